"""
Tests for the address lookup proxy. Upstream HTTP is patched.
"""
from unittest.mock import patch, MagicMock

import requests
from django.test import TestCase, Client, override_settings

from apps.address import services
from apps.address.services import AddressLookupError


def json_response(data):
    response = MagicMock()
    response.json.return_value = data
    return response


@override_settings(NOMINATIM_URL="https://nominatim.test", ADDRESS_LOOKUP_TIMEOUT=3)
class AddressServiceTest(TestCase):

    @patch('apps.address.services.requests.get')
    def test_search_defaults_to_bangladesh(self, mock_get):
        mock_get.return_value = json_response([{"display_name": "Dhanmondi, Dhaka"}])

        results = services.search("Dhanmondi")

        self.assertEqual(results[0]["display_name"], "Dhanmondi, Dhaka")
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://nominatim.test/search")
        self.assertEqual(kwargs["params"]["countrycodes"], "bd")
        self.assertEqual(kwargs["timeout"], 3)
        self.assertIn("User-Agent", kwargs["headers"])

    @patch('apps.address.services.requests.get', side_effect=requests.Timeout("slow"))
    def test_timeout(self, mock_get):
        with self.assertRaisesMessage(AddressLookupError, "timed out"):
            services.reverse(23.8, 90.4)

    @override_settings(GEONAMES_USERNAME="")
    def test_postal_lookup_requires_username(self):
        with self.assertRaises(AddressLookupError):
            services.postal_lookup("1205")

    @override_settings(GEONAMES_USERNAME="demo", GEONAMES_URL="https://geonames.test")
    @patch('apps.address.services.requests.get')
    def test_postal_lookup(self, mock_get):
        mock_get.return_value = json_response({"postalCodes": [{"placeName": "Dhanmondi"}]})

        self.assertEqual(services.postal_lookup("1205"), [{"placeName": "Dhanmondi"}])
        self.assertEqual(mock_get.call_args.kwargs["params"]["country"], "BD")

    @override_settings(GEONAMES_USERNAME="demo")
    @patch('apps.address.services.requests.get')
    def test_postal_lookup_error_body(self, mock_get):
        mock_get.return_value = json_response({"status": {"message": "user does not exist", "value": 10}})
        with self.assertRaisesMessage(AddressLookupError, "user does not exist"):
            services.postal_lookup("1205")


class AddressAPITest(TestCase):

    def setUp(self):
        self.client = Client()

    @patch('apps.address.services.search', return_value=[{"display_name": "Gulshan"}])
    def test_search(self, mock_search):
        response = self.client.get('/api/address/search', {"q": "Gulshan", "limit": 50})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Cache-Control'], 'public, max-age=3600')
        mock_search.assert_called_once_with("Gulshan", limit=20)

    def test_search_query_too_short(self):
        response = self.client.get('/api/address/search', {"q": "a"})
        self.assertEqual(response.status_code, 400)

    @patch('apps.address.services.search', side_effect=AddressLookupError("Address service timed out"))
    def test_upstream_failure(self, mock_search):
        response = self.client.get('/api/address/search', {"q": "Gulshan"})
        self.assertEqual(response.status_code, 502)

    def test_reverse_rejects_bad_coordinates(self):
        response = self.client.get('/api/address/reverse', {"lat": 123, "lon": 90})
        self.assertEqual(response.status_code, 400)

    @patch('apps.address.services.postal_lookup', return_value=[])
    def test_postal_code(self, mock_lookup):
        response = self.client.get('/api/address/postal-code/1205')
        self.assertEqual(response.status_code, 200)
        mock_lookup.assert_called_once_with("1205")

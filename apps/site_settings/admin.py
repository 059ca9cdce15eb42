from django.contrib import admin
from .models import GeneralSettings, PaymentSettings, CourierSettings, IntegrationSettings, AuthSettings


class SingletonSettingsAdmin(admin.ModelAdmin):
    readonly_fields = ['created_at', 'updated_at']

    def has_add_permission(self, request):
        return not self.model.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


for model in (GeneralSettings, PaymentSettings, CourierSettings, IntegrationSettings, AuthSettings):
    admin.site.register(model, SingletonSettingsAdmin)

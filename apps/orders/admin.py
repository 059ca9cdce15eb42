from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'total', 'payment_method', 'payment_status', 'order_status', 'created_at']
    list_filter = ['order_status', 'payment_status', 'payment_method']
    search_fields = ['order_number', 'transaction_id']
    readonly_fields = ['payment_status', 'transaction_id', 'payment_details', 'invoice_url']
    inlines = [OrderItemInline]

from django.contrib import admin

from .models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model  = OrderItem
    extra  = 0
    fields = ("name", "quantity", "unit_price", "total_price")


class StatusHistoryInline(admin.TabularInline):
    model           = OrderStatusHistory
    extra           = 0
    can_delete      = False
    readonly_fields = ("sequence", "status", "note", "actor", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display    = ("order_number", "customer_name", "status", "total_amount", "balance_due", "currency", "created_at")
    list_filter     = ("status", "currency")
    search_fields   = ("order_number", "customer_name", "customer_email", "tracking_id")
    readonly_fields = ("id", "order_number", "quote", "total_amount", "deposit_amount", "balance_due",
                       "closed_at", "created_at", "updated_at")
    inlines         = [OrderItemInline, StatusHistoryInline]

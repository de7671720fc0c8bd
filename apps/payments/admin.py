from django.contrib import admin
from .models import Payment, PaymentLink


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display  = ("payment_number", "order", "amount", "currency", "method", "payment_type", "status", "paid_at")
    list_filter   = ("status", "method", "payment_type")
    search_fields = ("payment_number", "external_id", "order__order_number")
    readonly_fields = ("id", "payment_number", "created_at", "updated_at")


@admin.register(PaymentLink)
class PaymentLinkAdmin(admin.ModelAdmin):
    list_display  = ("quote", "amount", "currency", "status", "expires_at", "used_at")
    list_filter   = ("status",)
    search_fields = ("token", "quote__quote_number")
    readonly_fields = ("id", "token", "created_at")

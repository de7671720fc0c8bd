from django.contrib import admin

from .models import Quote, QuoteItem


class QuoteItemInline(admin.TabularInline):
    model  = QuoteItem
    extra  = 0
    fields = ("name", "quantity", "unit_price", "total_price", "weight_kg")


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display    = ("quote_number", "customer_name", "status", "total_amount", "currency", "valid_until", "created_at")
    list_filter     = ("status", "currency")
    search_fields   = ("quote_number", "customer_name", "customer_email")
    readonly_fields = ("id", "quote_number", "subtotal", "total_amount", "created_at", "updated_at")
    inlines         = [QuoteItemInline]

from django.contrib import admin

from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display    = ("document_number", "doc_type", "order", "issued_by", "created_at")
    list_filter     = ("doc_type",)
    search_fields   = ("document_number", "order__order_number")
    readonly_fields = ("id", "document_number", "snapshot", "created_at")

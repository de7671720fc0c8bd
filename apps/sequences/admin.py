from django.contrib import admin
from .models import SequenceCounter


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display    = ("prefix", "year", "last_value", "updated_at")
    list_filter     = ("prefix", "year")
    readonly_fields = ("prefix", "year", "last_value", "updated_at")

from rest_framework import serializers

from .models import Document


class DocumentIssueSerializer(serializers.Serializer):
    doc_type = serializers.ChoiceField(choices=Document.Type.choices)
    notes    = serializers.CharField(required=False, allow_blank=True, default="")


class DocumentSerializer(serializers.ModelSerializer):
    class Meta:
        model  = Document
        fields = ["document_number", "doc_type", "issued_by", "created_at", "snapshot"]

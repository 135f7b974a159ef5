from __future__ import annotations

from rest_framework import serializers

from pricing.dataclasses import LineSelection
from pricing.serializers import LineSelectionSerializer
from pricing.services.pricing_service import MAX_QUANTITY
from .models import Quote, QuoteHistory, QuoteStatus


class QuoteHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = QuoteHistory
        fields = ["id", "action", "payload", "created_at"]


class QuoteSerializer(serializers.ModelSerializer):
    owner = serializers.SerializerMethodField()

    class Meta:
        model = Quote
        fields = [
            "id", "reference", "base_reference", "revision_number",
            "client_name", "project_name", "quantity", "discount_percentage",
            "inserts_count", "pricing_version", "status", "pdf_url",
            "owner", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_owner(self, obj):
        return obj.owner.get_username() if obj.owner else None


def render_quote(detail, include_history: bool = True) -> dict:
    """Quote fields plus priced lines, re-derived totals and (optionally) history, newest first."""
    data = dict(QuoteSerializer(detail.quote).data)
    data["lines"] = [line.to_dict() for line in detail.lines]
    data["totals"] = detail.totals.to_dict()
    if include_history:
        data["history"] = QuoteHistorySerializer(detail.history, many=True).data
    return data


class PricingInputSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY)
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, default=0)
    inserts_count = serializers.IntegerField(min_value=0, default=1)
    lines = LineSelectionSerializer(many=True, allow_empty=False)

    def selections(self):
        return [LineSelection(**item) for item in self.validated_data["lines"]]


class QuoteInputSerializer(PricingInputSerializer):
    client_name = serializers.CharField(max_length=255)
    project_name = serializers.CharField(max_length=255)

    def selections(self):
        if "lines" not in self.validated_data:
            return None
        return super().selections()

    def changes(self):
        return {k: v for k, v in self.validated_data.items() if k != "lines"}


class ReviseInputSerializer(QuoteInputSerializer):
    """Every field optional: anything left out is copied from the source quote."""
    client_name = serializers.CharField(max_length=255, required=False)
    project_name = serializers.CharField(max_length=255, required=False)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_QUANTITY, required=False)
    discount_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False)
    inserts_count = serializers.IntegerField(min_value=0, required=False)
    lines = LineSelectionSerializer(many=True, allow_empty=False, required=False)


class StatusInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=QuoteStatus.choices)

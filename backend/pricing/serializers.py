from __future__ import annotations

from rest_framework import serializers

from .dataclasses import CUSTOM_LINE_REF, CustomPricingUnit
from .models import Band, Category, RateCard, RateCardUnit


class BandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Band
        fields = ["id", "from_qty", "to_qty", "price_per_thousand", "make_ready_fixed"]
        read_only_fields = ("id",)


class RateCardSerializer(serializers.ModelSerializer):
    bands = BandSerializer(many=True, read_only=True)

    class Meta:
        model = RateCard
        fields = ["id", "code", "name", "unit", "category", "notes", "bands", "created_at", "updated_at"]
        read_only_fields = ("id", "created_at", "updated_at")


class BandInputSerializer(serializers.Serializer):
    from_qty = serializers.IntegerField()
    to_qty = serializers.IntegerField()
    price_per_thousand = serializers.DecimalField(max_digits=12, decimal_places=4)
    make_ready_fixed = serializers.DecimalField(max_digits=12, decimal_places=2, default=0)


class RateCardInputSerializer(serializers.Serializer):
    # Range and contiguity checks live in services.catalog.validate_bands
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=200)
    unit = serializers.ChoiceField(choices=RateCardUnit.choices, default=RateCardUnit.PER_THOUSAND)
    category = serializers.ChoiceField(choices=Category.choices, default=Category.PRINT)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    bands = BandInputSerializer(many=True)


class LineSelectionSerializer(serializers.Serializer):
    rate_card_id = serializers.CharField(required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    custom_description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    custom_setup_charge = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    custom_price = serializers.DecimalField(max_digits=12, decimal_places=4, required=False, default=0)
    custom_pricing_unit = serializers.ChoiceField(
        choices=CustomPricingUnit.choices, required=False, default=CustomPricingUnit.PER_THOUSAND
    )

    def validate_rate_card_id(self, value):
        if value in (None, "", CUSTOM_LINE_REF):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise serializers.ValidationError(f"must be a rate card id or '{CUSTOM_LINE_REF}'")


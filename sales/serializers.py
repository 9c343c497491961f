"""
Sales — Input Serializers

Validate the payloads handed to SaleEngine. Explicit field lists; no
model serializers, the engine owns persistence.

@file sales/serializers.py
"""

from rest_framework import serializers

from .models import Sale


class SaleLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=0, required=False,
    )
    batch_number = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)

    def validate_batch_number(self, value):
        return value or None


class SaleRequestSerializer(serializers.Serializer):
    branch_id = serializers.UUIDField()
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    items = SaleLineSerializer(many=True)
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, default=0)
    discount_type = serializers.ChoiceField(
        choices=Sale.DiscountTypeChoices.choices, default=Sale.DiscountTypeChoices.AMOUNT,
    )
    payment_method = serializers.ChoiceField(
        choices=Sale.PaymentMethodChoices.choices, default=Sale.PaymentMethodChoices.CASH,
    )
    notes = serializers.CharField(allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required.')
        return value

    def validate_discount(self, value):
        if value < 0:
            raise serializers.ValidationError('Discount cannot be negative.')
        return value

    def validate(self, attrs):
        if (
            attrs['discount_type'] == Sale.DiscountTypeChoices.PERCENTAGE
            and attrs['discount'] > 100
        ):
            raise serializers.ValidationError({'discount': 'Percentage discount cannot exceed 100.'})
        return attrs


class HeldSaleSerializer(serializers.Serializer):
    cart = serializers.ListField(child=serializers.DictField(), allow_empty=False)
    notes = serializers.CharField(allow_blank=True, default='')

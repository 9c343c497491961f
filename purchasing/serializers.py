"""
Purchasing — Input Serializers

@file purchasing/serializers.py
"""

from rest_framework import serializers


class OrderLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    batch_number = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    manufacturing_date = serializers.DateField(required=False, allow_null=True)

    def validate_batch_number(self, value):
        return value or None

    def validate(self, attrs):
        mfg = attrs.get('manufacturing_date')
        exp = attrs.get('expiry_date')
        if mfg and exp and exp <= mfg:
            raise serializers.ValidationError({'expiry_date': 'Expiry date must be after manufacturing date.'})
        return attrs


class PurchaseOrderRequestSerializer(serializers.Serializer):
    items = OrderLineSerializer(many=True)
    expected_delivery = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required.')
        return value


class ReceivedLineSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    received_quantity = serializers.IntegerField(min_value=0)
    batch_number = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    manufacturing_date = serializers.DateField(required=False, allow_null=True)

    def validate_batch_number(self, value):
        return value or None


class ReceiveRequestSerializer(serializers.Serializer):
    items = ReceivedLineSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one received line is required.')
        ids = [line['item_id'] for line in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError('Each purchase order item may be received once per call.')
        return value

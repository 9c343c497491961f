"""
Transfers — Input Serializers

@file transfers/serializers.py
"""

from rest_framework import serializers


class TransferLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    batch_number = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)

    def validate_batch_number(self, value):
        return value or None


class TransferRequestSerializer(serializers.Serializer):
    from_branch_id = serializers.UUIDField()
    to_branch_id = serializers.UUIDField()
    items = TransferLineSerializer(many=True)
    notes = serializers.CharField(allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required.')
        return value

    def validate(self, attrs):
        if attrs['from_branch_id'] == attrs['to_branch_id']:
            raise serializers.ValidationError({'to_branch_id': 'Cannot transfer stock to the same branch.'})
        return attrs

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from rest_framework import serializers

from tracker.models import Advance, Expense, FundsReceived, Invoice, Site, User

POSITIVE_AMOUNT_ERRORS = {'min_value': 'Amount must be a positive number.'}


def duplicate_site_name_message(name: str) -> str:
    return f'Site with name "{name}" already exists'


class CleanModelSerializer(serializers.ModelSerializer):
    """ModelSerializer that runs full_clean before saving."""

    def _perform_full_clean(self, instance):
        try:
            instance.full_clean()
        except ValidationError as exc:
            if hasattr(exc, 'message_dict'):
                raise serializers.ValidationError(exc.message_dict) from exc
            raise serializers.ValidationError({'detail': exc.messages}) from exc

    def create(self, validated_data, **kwargs):
        validated_data.update(kwargs)
        instance = self.Meta.model(**validated_data)
        self._perform_full_clean(instance)
        instance.save()
        return instance

    def update(self, instance, validated_data, **kwargs):
        validated_data.update(kwargs)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        self._perform_full_clean(instance)
        instance.save()
        return instance


class UserSummarySerializer(serializers.ModelSerializer):
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ('id', 'username', 'full_name', 'email', 'role')

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username


class SiteSerializer(CleanModelSerializer):
    supervisor_detail = UserSummarySerializer(source='supervisor', read_only=True)

    class Meta:
        model = Site
        fields = (
            'id',
            'name',
            'job_name',
            'pos_no',
            'location',
            'start_date',
            'completion_date',
            'supervisor',
            'supervisor_detail',
            'is_completed',
            'funds',
            'created_by',
            'created_at',
            'updated_at',
        )
        read_only_fields = ('is_completed', 'funds', 'created_by', 'created_at', 'updated_at')
        extra_kwargs = {'name': {'validators': []}}

    def validate_name(self, value):
        value = value.strip()
        duplicates = Site.objects.filter(name=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError(duplicate_site_name_message(value))
        return value

    def validate_supervisor(self, value):
        if value is not None and value.role != User.Roles.SUPERVISOR:
            raise serializers.ValidationError('Assigned user must have the supervisor role.')
        return value

    def _save_unique(self, save, name):
        try:
            return save()
        except IntegrityError as exc:
            # Lost the race against a concurrent insert with the same name.
            raise serializers.ValidationError({'name': [duplicate_site_name_message(name)]}) from exc

    def create(self, validated_data, **kwargs):
        name = kwargs.get('name', validated_data.get('name'))
        return self._save_unique(lambda: super(SiteSerializer, self).create(validated_data, **kwargs), name)

    def update(self, instance, validated_data, **kwargs):
        name = kwargs.get('name', validated_data.get('name', instance.name))
        return self._save_unique(lambda: super(SiteSerializer, self).update(instance, validated_data, **kwargs), name)


class SiteCompletionSerializer(serializers.Serializer):
    completion_date = serializers.DateField()


class FundsIncrementSerializer(serializers.Serializer):
    """Body of the increment-funds function; amount must fit ``Site.funds``."""

    site_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))


class SiteSummarySerializer(serializers.Serializer):
    funds_received = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_expenditure = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_advances = serializers.DecimalField(max_digits=16, decimal_places=2)
    debits_to_worker = serializers.DecimalField(max_digits=16, decimal_places=2)
    invoices_paid = serializers.DecimalField(max_digits=16, decimal_places=2)
    pending_invoices = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_balance = serializers.DecimalField(max_digits=16, decimal_places=2)


class SiteRecordSerializer(CleanModelSerializer):
    """Shared rules for rows booked against a site."""

    def validate_site(self, value):
        if self.instance is not None and value.pk != self.instance.site_id:
            raise serializers.ValidationError('Site cannot be changed once recorded.')
        return value


class ExpenseSerializer(SiteRecordSerializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.01'), error_messages=POSITIVE_AMOUNT_ERRORS
    )

    class Meta:
        model = Expense
        fields = ('id', 'site', 'date', 'description', 'category', 'amount', 'created_by', 'created_at')
        read_only_fields = ('created_by', 'created_at')


class AdvanceSerializer(SiteRecordSerializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.01'), error_messages=POSITIVE_AMOUNT_ERRORS
    )
    recipient_name = serializers.CharField(
        max_length=255,
        min_length=2,
        error_messages={'min_length': 'Name must be at least 2 characters.'},
    )

    class Meta:
        model = Advance
        fields = (
            'id',
            'site',
            'date',
            'recipient_name',
            'recipient_type',
            'purpose',
            'amount',
            'remarks',
            'status',
            'created_by',
            'created_at',
        )
        read_only_fields = ('created_by', 'created_at')


class FundsReceivedSerializer(SiteRecordSerializer):
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.01'), error_messages=POSITIVE_AMOUNT_ERRORS
    )

    class Meta:
        model = FundsReceived
        fields = ('id', 'site', 'date', 'amount', 'reference', 'method', 'created_by', 'created_at')
        read_only_fields = ('created_by', 'created_at')


class InvoiceSerializer(SiteRecordSerializer):
    net_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'))

    class Meta:
        model = Invoice
        fields = (
            'id',
            'site',
            'date',
            'party_id',
            'party_name',
            'material',
            'quantity',
            'rate',
            'gst_percentage',
            'gross_amount',
            'net_amount',
            'material_items',
            'bank_details',
            'bill_url',
            'invoice_image_url',
            'payment_status',
            'payment_by',
            'created_by',
            'created_at',
        )
        read_only_fields = ('created_by', 'created_at')

    def validate_material_items(self, value):
        if value in (None, ''):
            return []
        if not isinstance(value, list):
            raise serializers.ValidationError('Material items must be a list.')
        return value

    def validate_bank_details(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError('Bank details must be an object.')
        return value

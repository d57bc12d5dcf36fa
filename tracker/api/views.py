from __future__ import annotations

import logging

from django.db import transaction as db_transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from tracker.access import can_view_all_sites, can_write_site, visible_site_records_for_user, visible_sites_for_user
from tracker.api.permissions import ReadOnlyForViewers, RolePermission
from tracker.api.serializers import (
    AdvanceSerializer,
    ExpenseSerializer,
    FundsReceivedSerializer,
    InvoiceSerializer,
    SiteCompletionSerializer,
    SiteSerializer,
    SiteSummarySerializer,
    UserSummarySerializer,
)
from tracker.filters import AdvanceFilter, ExpenseFilter, FundsReceivedFilter, InvoiceFilter, SiteFilter
from tracker.models import Advance, Expense, FundsReceived, Invoice, Site, User
from tracker.repository import site_ledgers
from tracker.services import FundsLimitError, record_funds_received, recalculate_site_funds

logger = logging.getLogger(__name__)

WRITERS = (User.Roles.ADMIN, User.Roles.SUPERVISOR)
ADMINS = (User.Roles.ADMIN,)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        username = attrs.get(self.username_field)
        if username and '@' in username:
            user = User.objects.filter(email__iexact=username).first()
            if user:
                attrs[self.username_field] = user.get_username()
        return super().validate(attrs)


class CustomTokenObtainPairView(TokenObtainPairView):
    permission_classes = (AllowAny,)
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshView(TokenRefreshView):
    permission_classes = (AllowAny,)


class MeView(APIView):
    def get(self, request):
        return Response({
            'user': UserSummarySerializer(request.user).data,
            'can_view_all_sites': can_view_all_sites(request.user),
        })


class BaseModelViewSet(viewsets.ModelViewSet):
    permission_classes = (ReadOnlyForViewers, RolePermission)
    role_map: dict[str, tuple[str, ...] | None] | None = None

    def get_permissions(self):
        if self.role_map:
            roles = self.role_map.get(self.action)
            self.allowed_roles = roles
        return super().get_permissions()


class SiteViewSet(BaseModelViewSet):
    serializer_class = SiteSerializer
    filterset_class = SiteFilter
    search_fields = ('name', 'job_name', 'pos_no')
    ordering_fields = ('name', 'start_date', 'created_at', 'funds')
    role_map = {
        'create': WRITERS,
        'update': WRITERS,
        'partial_update': WRITERS,
        'destroy': ADMINS,
        'complete': WRITERS,
        'recalculate_funds': ADMINS,
    }

    def get_queryset(self):
        qs = Site.objects.select_related('supervisor', 'created_by')
        return visible_sites_for_user(self.request.user, qs)

    def perform_create(self, serializer):
        user = self.request.user
        extra = {'created_by': user}
        if user.has_any_role(User.Roles.SUPERVISOR) and not user.is_superuser:
            # Supervisors can only open sites they run.
            extra['supervisor'] = user
        site = serializer.save(**extra)
        logger.info("Site %s created by %s", site.pk, user.pk)

    def perform_update(self, serializer):
        user = self.request.user
        if not can_write_site(user, serializer.instance):
            raise PermissionDenied('You cannot edit this site.')
        if (
            user.has_any_role(User.Roles.SUPERVISOR)
            and not user.is_superuser
            and 'supervisor' in serializer.validated_data
            and serializer.validated_data['supervisor'] != user
        ):
            raise PermissionDenied('Supervisors cannot reassign their sites.')
        serializer.save()

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        site = self.get_object()
        ledger = site_ledgers.get_ledger(site.pk)
        if ledger is None:
            raise NotFound('Site not found.')
        return Response(SiteSummarySerializer(ledger.summary().as_dict()).data)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        site = self.get_object()
        if not can_write_site(request.user, site):
            raise PermissionDenied('You cannot complete this site.')
        if site.is_completed:
            return Response({'detail': 'Site is already completed.'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = SiteCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        completion_date = serializer.validated_data['completion_date']
        if completion_date < site.start_date:
            return Response(
                {'completion_date': ['Completion date cannot be before the start date.']},
                status=status.HTTP_400_BAD_REQUEST,
            )
        site.completion_date = completion_date
        site.is_completed = True
        site.save(update_fields=['completion_date', 'is_completed', 'updated_at'])
        logger.info("Site %s marked completed on %s", site.pk, completion_date)
        return Response(SiteSerializer(site).data)

    @action(detail=True, methods=['post'], url_path='recalculate-funds')
    def recalculate_funds(self, request, pk=None):
        site = self.get_object()
        previous = site.funds
        total = recalculate_site_funds(site)
        return Response({
            'site': site.pk,
            'previous_funds': str(previous),
            'funds': str(total),
        })


class SiteRecordViewSet(BaseModelViewSet):
    """Expenses, advances and invoices: scoped to visible sites, writes need site access."""

    model = None
    role_map = {
        'create': WRITERS,
        'update': WRITERS,
        'partial_update': WRITERS,
        'destroy': WRITERS,
    }

    def get_queryset(self):
        qs = self.model.objects.select_related('site', 'created_by')
        return visible_site_records_for_user(self.request.user, qs)

    def _check_site(self, site):
        if not can_write_site(self.request.user, site):
            raise PermissionDenied('You do not have access to this site.')

    def perform_create(self, serializer):
        self._check_site(serializer.validated_data['site'])
        serializer.save(created_by=self.request.user)

    def perform_update(self, serializer):
        self._check_site(serializer.instance.site)
        serializer.save()

    def perform_destroy(self, instance):
        self._check_site(instance.site)
        instance.delete()


class ExpenseViewSet(SiteRecordViewSet):
    model = Expense
    serializer_class = ExpenseSerializer
    filterset_class = ExpenseFilter
    search_fields = ('description',)
    ordering_fields = ('date', 'amount', 'created_at')


class AdvanceViewSet(SiteRecordViewSet):
    model = Advance
    serializer_class = AdvanceSerializer
    filterset_class = AdvanceFilter
    search_fields = ('recipient_name', 'remarks')
    ordering_fields = ('date', 'amount', 'created_at')


class FundsReceivedViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Funds are append-only; each entry bumps the site's running total."""

    serializer_class = FundsReceivedSerializer
    filterset_class = FundsReceivedFilter
    ordering_fields = ('date', 'amount', 'created_at')
    permission_classes = (ReadOnlyForViewers, RolePermission)
    role_map = {'create': WRITERS}

    def get_permissions(self):
        self.allowed_roles = self.role_map.get(self.action)
        return super().get_permissions()

    def get_queryset(self):
        qs = FundsReceived.objects.select_related('site', 'created_by')
        return visible_site_records_for_user(self.request.user, qs)

    def perform_create(self, serializer):
        data = serializer.validated_data
        site = data['site']
        if not can_write_site(self.request.user, site):
            raise PermissionDenied('You do not have access to this site.')
        try:
            serializer.instance = record_funds_received(
                site,
                amount=data['amount'],
                date=data['date'],
                reference=data.get('reference', ''),
                method=data.get('method', ''),
                created_by=self.request.user,
            )
        except FundsLimitError as exc:
            raise ValidationError({'amount': [str(exc)]}) from exc


class InvoiceViewSet(SiteRecordViewSet):
    model = Invoice
    serializer_class = InvoiceSerializer
    filterset_class = InvoiceFilter
    search_fields = ('party_name', 'material')
    ordering_fields = ('date', 'net_amount', 'created_at')
    role_map = {
        **SiteRecordViewSet.role_map,
        'mark_paid': ADMINS,
    }

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        with db_transaction.atomic():
            invoice = self.get_object()
            if invoice.payment_by != Invoice.PaymentBy.HEAD_OFFICE:
                return Response(
                    {'detail': 'Only head office invoices are settled here.'},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            if invoice.payment_status != Invoice.PaymentStatus.PENDING:
                return Response({'detail': 'Invoice is already paid.'}, status=status.HTTP_400_BAD_REQUEST)
            invoice.payment_status = Invoice.PaymentStatus.PAID
            invoice.save(update_fields=['payment_status', 'updated_at'])
        logger.info("Invoice %s marked paid by %s", invoice.pk, request.user.pk)
        return Response(InvoiceSerializer(invoice).data)

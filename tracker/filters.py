import django_filters
from django.contrib.auth import get_user_model

from .models import Advance, Expense, FundsReceived, Invoice, Site

User = get_user_model()


class SiteFilter(django_filters.FilterSet):
    STATUS_CHOICES = (
        ('active', 'Active'),
        ('completed', 'Completed'),
    )

    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES, method='filter_status', label='Status')
    supervisor = django_filters.ModelChoiceFilter(queryset=User.objects.filter(role=User.Roles.SUPERVISOR))
    start_date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = Site
        fields = ['supervisor', 'status', 'start_date']

    def filter_status(self, queryset, name, value):
        if value == 'completed':
            return queryset.filter(is_completed=True)
        if value == 'active':
            return queryset.filter(is_completed=False)
        return queryset


class ExpenseFilter(django_filters.FilterSet):
    date = django_filters.DateFromToRangeFilter()
    category = django_filters.ChoiceFilter(choices=Expense.Category.choices)

    class Meta:
        model = Expense
        fields = ['site', 'category', 'date']


class AdvanceFilter(django_filters.FilterSet):
    date = django_filters.DateFromToRangeFilter()
    purpose = django_filters.ChoiceFilter(choices=Advance.Purpose.choices)
    recipient_type = django_filters.ChoiceFilter(choices=Advance.RecipientType.choices)
    status = django_filters.ChoiceFilter(choices=Advance.Status.choices)

    class Meta:
        model = Advance
        fields = ['site', 'purpose', 'recipient_type', 'status', 'date']


class FundsReceivedFilter(django_filters.FilterSet):
    date = django_filters.DateFromToRangeFilter()

    class Meta:
        model = FundsReceived
        fields = ['site', 'date']


class InvoiceFilter(django_filters.FilterSet):
    date = django_filters.DateFromToRangeFilter()
    payment_status = django_filters.ChoiceFilter(choices=Invoice.PaymentStatus.choices)
    payment_by = django_filters.ChoiceFilter(choices=Invoice.PaymentBy.choices)

    class Meta:
        model = Invoice
        fields = ['site', 'payment_status', 'payment_by', 'date']

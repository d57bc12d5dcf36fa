from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class User(AbstractUser):
    class Roles(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        SUPERVISOR = 'supervisor', 'Supervisor'
        VIEWER = 'viewer', 'Viewer (read-only)'

    phone = models.CharField(max_length=50, blank=True)
    role = models.CharField(max_length=32, choices=Roles.choices, default=Roles.SUPERVISOR)

    def __str__(self) -> str:
        return f"{self.get_full_name() or self.username} ({self.get_role_display()})"

    def has_any_role(self, *roles: str) -> bool:
        return self.role in roles


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Site(TimeStampedModel):
    name = models.CharField(max_length=255, unique=True)
    job_name = models.CharField(max_length=255)
    pos_no = models.CharField(max_length=50)
    location = models.CharField(max_length=255, blank=True)
    start_date = models.DateField()
    completion_date = models.DateField(null=True, blank=True)
    supervisor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='supervised_sites'
    )
    is_completed = models.BooleanField(default=False)
    funds = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text='Running total of funds received. Rebuild with recalculate_site_funds.',
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sites_created'
    )

    class Meta:
        db_table = 'sites'
        ordering = ['name']
        indexes = [
            models.Index(fields=['supervisor', 'is_completed'], name='sites_supervisor_status_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.pos_no})"

    def clean(self):
        if self.completion_date and self.start_date and self.completion_date < self.start_date:
            raise ValidationError({'completion_date': 'Completion date cannot be before the start date.'})


class SiteRecord(TimeStampedModel):
    """Base for everything booked against one site."""

    site = models.ForeignKey(Site, on_delete=models.CASCADE)
    date = models.DateField()
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')

    class Meta:
        abstract = True
        ordering = ['-date', '-created_at']


class Expense(SiteRecord):
    class Category(models.TextChoices):
        MATERIAL = 'material', 'Material'
        LABOUR = 'labour', 'Labour'
        TRANSPORT = 'transport', 'Transport'
        EQUIPMENT = 'equipment', 'Equipment'
        FOOD = 'food', 'Food'
        ACCOMMODATION = 'accommodation', 'Accommodation'
        MISCELLANEOUS = 'miscellaneous', 'Miscellaneous'

    description = models.TextField(blank=True)
    category = models.CharField(max_length=32, choices=Category.choices, default=Category.MISCELLANEOUS)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])

    class Meta(SiteRecord.Meta):
        db_table = 'expenses'
        default_related_name = 'expenses'
        indexes = [
            models.Index(fields=['site', 'date'], name='expenses_site_date_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_category_display()} {self.amount} on {self.date}"


class Advance(SiteRecord):
    class Purpose(models.TextChoices):
        ADVANCE = 'advance', 'Advance'
        SAFETY_SHOES = 'safety_shoes', 'Safety Shoes'
        TOOLS = 'tools', 'Tools'
        OTHER = 'other', 'Other'

    class RecipientType(models.TextChoices):
        WORKER = 'worker', 'Worker'
        SUBCONTRACTOR = 'subcontractor', 'Subcontractor'
        SUPERVISOR = 'supervisor', 'Supervisor'

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    recipient_name = models.CharField(max_length=255)
    recipient_type = models.CharField(max_length=32, choices=RecipientType.choices)
    purpose = models.CharField(max_length=32, choices=Purpose.choices, default=Purpose.ADVANCE)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    remarks = models.TextField(blank=True)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.APPROVED)

    class Meta(SiteRecord.Meta):
        db_table = 'advances'
        default_related_name = 'advances'
        indexes = [
            models.Index(fields=['site', 'purpose'], name='advances_site_purpose_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_purpose_display()} {self.amount} to {self.recipient_name}"


class FundsReceived(SiteRecord):
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    reference = models.CharField(max_length=100, blank=True)
    method = models.CharField(max_length=50, blank=True)

    class Meta(SiteRecord.Meta):
        db_table = 'funds_received'
        default_related_name = 'funds_received'
        verbose_name_plural = 'funds received'

    def __str__(self) -> str:
        return f"Funds {self.amount} on {self.date}"


class Invoice(SiteRecord):
    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'

    class PaymentBy(models.TextChoices):
        SUPERVISOR = 'supervisor', 'Supervisor'
        HEAD_OFFICE = 'ho', 'Head Office'

    party_id = models.CharField(max_length=64, blank=True)
    party_name = models.CharField(max_length=255)
    material = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rate = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    gst_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    gross_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    net_amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    material_items = models.JSONField(default=list, blank=True)
    bank_details = models.JSONField(default=dict, blank=True)
    bill_url = models.URLField(max_length=500, blank=True)
    invoice_image_url = models.URLField(max_length=500, blank=True)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_by = models.CharField(max_length=16, choices=PaymentBy.choices, default=PaymentBy.HEAD_OFFICE)

    class Meta(SiteRecord.Meta):
        db_table = 'site_invoices'
        default_related_name = 'invoices'
        indexes = [
            models.Index(fields=['site', 'payment_by'], name='invoices_site_payment_by_idx'),
            models.Index(fields=['payment_status'], name='invoices_payment_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Invoice {self.party_name} {self.net_amount}"

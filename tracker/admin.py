from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import Advance, Expense, FundsReceived, Invoice, Site, User
from .services import apply_funds_increment


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (('Role Info', {'fields': ('role', 'phone')}),)
    list_display = ('username', 'email', 'role', 'is_staff')
    list_filter = ('role', 'is_staff')


class ExpenseInline(admin.TabularInline):
    model = Expense
    extra = 0
    fields = ('date', 'category', 'amount', 'description')


class FundsReceivedInline(admin.TabularInline):
    model = FundsReceived
    extra = 0
    fields = ('date', 'amount', 'reference', 'method')
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Site)
class SiteAdmin(admin.ModelAdmin):
    list_display = ('name', 'job_name', 'pos_no', 'supervisor', 'start_date', 'is_completed', 'funds')
    search_fields = ('name', 'job_name', 'pos_no')
    list_filter = ('is_completed', 'supervisor')
    readonly_fields = ('funds', 'created_by', 'created_at', 'updated_at')
    inlines = [ExpenseInline, FundsReceivedInline]

    def save_model(self, request, obj, form, change):
        if not change and not obj.created_by_id:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ('site', 'date', 'category', 'amount')
    list_filter = ('category', 'date')
    search_fields = ('site__name', 'description')


@admin.register(Advance)
class AdvanceAdmin(admin.ModelAdmin):
    list_display = ('site', 'date', 'recipient_name', 'recipient_type', 'purpose', 'amount', 'status')
    list_filter = ('purpose', 'recipient_type', 'status')
    search_fields = ('recipient_name', 'site__name')


@admin.register(FundsReceived)
class FundsReceivedAdmin(admin.ModelAdmin):
    list_display = ('site', 'date', 'amount', 'reference', 'method')
    list_filter = ('date',)
    search_fields = ('site__name', 'reference')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        # Append-only; corrections go through recalculate_site_funds.
        return False

    def save_model(self, request, obj, form, change):
        if not obj.created_by_id:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)
        apply_funds_increment(obj.site, obj.amount)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('site', 'date', 'party_name', 'net_amount', 'payment_by', 'payment_status')
    list_filter = ('payment_by', 'payment_status')
    search_fields = ('party_name', 'material', 'site__name')

from __future__ import annotations

from tracker.models import Site, User


def can_view_all_sites(user: User | None) -> bool:
    if not user or not user.is_authenticated:
        return False
    return bool(user.is_superuser or user.has_any_role(User.Roles.ADMIN, User.Roles.VIEWER))


def visible_sites_for_user(user: User | None, queryset=None):
    qs = queryset if queryset is not None else Site.objects.all()
    if can_view_all_sites(user):
        return qs
    if not user or not user.is_authenticated:
        return qs.none()
    return qs.filter(supervisor=user)


def visible_site_records_for_user(user: User | None, queryset):
    """Scope expenses/advances/funds/invoices to the sites ``user`` may see."""
    if can_view_all_sites(user):
        return queryset
    if not user or not user.is_authenticated:
        return queryset.none()
    return queryset.filter(site__supervisor=user)


def can_write_site(user: User | None, site: Site) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser or user.has_any_role(User.Roles.ADMIN):
        return True
    return user.has_any_role(User.Roles.SUPERVISOR) and site.supervisor_id == user.pk

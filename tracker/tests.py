import datetime as dt
import json
from decimal import Decimal
from io import StringIO
from types import SimpleNamespace
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.core.management import call_command
from django.db import DatabaseError
from django.http import JsonResponse
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from sitebook.settings import cache_config

from .api.exceptions import exception_handler
from .balance import AdvanceBucket, SiteSummary, bucket_for_purpose, calculate_site_summary
from .decorators import role_required
from .models import Advance, Expense, FundsReceived, Invoice, Site
from .records import (
    AdvanceEntry,
    InvoiceEntry,
    RecordMappingError,
    SiteSnapshot,
    coerce_amount,
    parse_date,
)
from .repository import site_ledgers
from .services import increment_site_funds, record_funds_received, recalculate_site_funds

User = get_user_model()

START = dt.date(2024, 1, 10)


def _site(site_id=1):
    return SimpleNamespace(id=site_id)


def _amount(value, **extra):
    return SimpleNamespace(amount=Decimal(value), **extra)


def _invoice(value, payment_by):
    return SimpleNamespace(net_amount=Decimal(value), payment_by=payment_by)


class BalanceEngineTests(SimpleTestCase):
    def test_reference_scenario(self):
        summary = calculate_site_summary(
            1,
            sites=[_site(1)],
            funds_received=[_amount('10000')],
            expenses=[_amount('2000'), _amount('500')],
            advances=[
                _amount('1000', purpose=Advance.Purpose.ADVANCE),
                _amount('300', purpose=Advance.Purpose.TOOLS),
            ],
            invoices=[_invoice('1500', Invoice.PaymentBy.SUPERVISOR)],
        )
        self.assertEqual(summary.funds_received, Decimal('10000'))
        self.assertEqual(summary.total_expenditure, Decimal('2500'))
        self.assertEqual(summary.total_advances, Decimal('1000'))
        self.assertEqual(summary.debits_to_worker, Decimal('300'))
        self.assertEqual(summary.invoices_paid, Decimal('1500'))
        self.assertEqual(summary.pending_invoices, Decimal('0'))
        self.assertEqual(summary.total_balance, Decimal('5000'))

    def test_advance_buckets_partition_all_advances(self):
        advances = [
            _amount('120.50', purpose=Advance.Purpose.ADVANCE),
            _amount('80', purpose=Advance.Purpose.SAFETY_SHOES),
            _amount('45.25', purpose=Advance.Purpose.TOOLS),
            _amount('10', purpose=Advance.Purpose.OTHER),
            _amount('99', purpose='uniform'),
        ]
        summary = calculate_site_summary(1, sites=[_site()], advances=advances)
        self.assertEqual(
            summary.total_advances + summary.debits_to_worker,
            sum((advance.amount for advance in advances), Decimal('0')),
        )
        # Purposes outside the table count as cash advances.
        self.assertEqual(summary.total_advances, Decimal('219.50'))
        self.assertEqual(summary.debits_to_worker, Decimal('135.25'))

    def test_balance_identity(self):
        summary = calculate_site_summary(
            7,
            sites=[_site(3), _site(7)],
            funds_received=[_amount('500.10'), _amount('250.05')],
            expenses=[_amount('100.01')],
            advances=[_amount('20.02', purpose=Advance.Purpose.ADVANCE)],
            invoices=[_invoice('30.03', Invoice.PaymentBy.SUPERVISOR)],
        )
        self.assertEqual(
            summary.total_balance,
            summary.funds_received - summary.total_expenditure - summary.total_advances - summary.invoices_paid,
        )
        self.assertEqual(summary.total_balance, Decimal('600.09'))

    def test_empty_site_is_all_zero(self):
        self.assertEqual(calculate_site_summary(1, sites=[_site()]), SiteSummary())

    def test_head_office_invoices_do_not_touch_balance(self):
        summary = calculate_site_summary(
            1,
            sites=[_site()],
            funds_received=[_amount('1000')],
            invoices=[
                _invoice('400', Invoice.PaymentBy.HEAD_OFFICE),
                _invoice('250', Invoice.PaymentBy.SUPERVISOR),
            ],
        )
        self.assertEqual(summary.invoices_paid, Decimal('250'))
        self.assertEqual(summary.total_balance, Decimal('750'))

    def test_unknown_site_returns_zeros(self):
        summary = calculate_site_summary(
            99,
            sites=[_site(1)],
            funds_received=[_amount('1000')],
            expenses=[_amount('10')],
        )
        self.assertEqual(summary, SiteSummary())
        self.assertEqual(calculate_site_summary(None, sites=[_site(1)]), SiteSummary())

    def test_custom_purpose_table(self):
        table = {Advance.Purpose.ADVANCE: AdvanceBucket.DEBIT}
        self.assertEqual(bucket_for_purpose(Advance.Purpose.ADVANCE, table), AdvanceBucket.DEBIT)
        self.assertEqual(bucket_for_purpose(Advance.Purpose.TOOLS, table), AdvanceBucket.ADVANCE)

    def test_summary_dict_keeps_every_field(self):
        self.assertEqual(
            set(SiteSummary().as_dict()),
            {
                'funds_received',
                'total_expenditure',
                'total_advances',
                'debits_to_worker',
                'invoices_paid',
                'pending_invoices',
                'total_balance',
            },
        )


class RecordMappingTests(SimpleTestCase):
    def test_coerce_amount_accepts_numeric_inputs(self):
        self.assertEqual(coerce_amount('1250.75'), Decimal('1250.75'))
        self.assertEqual(coerce_amount(' 40 '), Decimal('40'))
        self.assertEqual(coerce_amount(12.5), Decimal('12.5'))
        self.assertEqual(coerce_amount(3), Decimal('3'))
        self.assertEqual(coerce_amount(None), Decimal('0'))
        self.assertEqual(coerce_amount(''), Decimal('0'))

    def test_coerce_amount_rejects_garbage(self):
        for value in ('abc', True, 'NaN', 'Infinity'):
            with self.subTest(value=value):
                with self.assertRaises(RecordMappingError):
                    coerce_amount(value)

    def test_parse_date_variants(self):
        self.assertEqual(parse_date('2024-03-01'), dt.date(2024, 3, 1))
        self.assertEqual(parse_date('2024-03-01T18:30:00Z'), dt.date(2024, 3, 1))
        self.assertEqual(parse_date(dt.datetime(2024, 3, 1, 9, 0)), dt.date(2024, 3, 1))
        self.assertIsNone(parse_date(None, required=False))
        with self.assertRaises(RecordMappingError):
            parse_date(None)
        with self.assertRaises(RecordMappingError):
            parse_date('01/03/2024')

    def test_optional_fields_use_shared_default(self):
        advance = AdvanceEntry.from_row({
            'id': 1,
            'site_id': 2,
            'date': '2024-02-02',
            'recipient_name': 'Ravi',
            'recipient_type': 'worker',
            'purpose': 'tools',
            'amount': '150.00',
            'remarks': None,
            'status': 'approved',
        })
        self.assertEqual(advance.remarks, '')
        self.assertEqual(advance.amount, Decimal('150.00'))

    def test_invoice_payment_by_defaults_to_head_office(self):
        invoice = InvoiceEntry.from_row({
            'id': 1,
            'site_id': 2,
            'date': '2024-02-02',
            'party_name': 'Cement Co',
            'material': None,
            'net_amount': None,
            'payment_status': 'pending',
            'payment_by': None,
        })
        self.assertEqual(invoice.payment_by, 'ho')
        self.assertEqual(invoice.net_amount, Decimal('0'))
        self.assertEqual(invoice.material, '')

    def test_site_snapshot_handles_missing_dates(self):
        snapshot = SiteSnapshot.from_row({
            'id': 5,
            'name': 'Harbour Road',
            'start_date': '2024-01-01',
            'completion_date': None,
            'funds': '0.00',
        })
        self.assertIsNone(snapshot.completion_date)
        self.assertEqual(snapshot.location, '')


class TrackerTestCase(TestCase):
    password = 'test-pass-123'

    def setUp(self):
        cache.clear()
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', password=self.password, role=User.Roles.ADMIN
        )
        self.supervisor = User.objects.create_user(
            username='sup', email='sup@example.com', password=self.password, role=User.Roles.SUPERVISOR
        )
        self.other_supervisor = User.objects.create_user(
            username='sup2', password=self.password, role=User.Roles.SUPERVISOR
        )
        self.viewer = User.objects.create_user(username='viewer', password=self.password, role=User.Roles.VIEWER)
        self.site = Site.objects.create(
            name='Harbour Road', job_name='Warehouse', pos_no='POS-1', start_date=START, supervisor=self.supervisor
        )
        self.other_site = Site.objects.create(
            name='Hill View', job_name='Villa', pos_no='POS-2', start_date=START, supervisor=self.other_supervisor
        )


class SiteLedgerRepositoryTests(TrackerTestCase):
    def test_unknown_site_has_no_ledger(self):
        self.assertIsNone(site_ledgers.get_ledger(self.other_site.pk + 100))

    def test_ledger_is_cached_until_a_write(self):
        Expense.objects.create(site=self.site, date=START, amount=Decimal('200'))
        ledger = site_ledgers.get_ledger(self.site.pk)
        self.assertEqual(len(ledger.expenses), 1)

        with self.assertNumQueries(0):
            site_ledgers.get_ledger(self.site.pk)

        Expense.objects.create(site=self.site, date=START, amount=Decimal('50'))
        ledger = site_ledgers.get_ledger(self.site.pk)
        self.assertEqual(len(ledger.expenses), 2)
        self.assertEqual(ledger.summary().total_expenditure, Decimal('250'))

    def test_delete_invalidates(self):
        advance = Advance.objects.create(
            site=self.site, date=START, recipient_name='Ravi', recipient_type='worker', amount=Decimal('75')
        )
        self.assertEqual(site_ledgers.get_ledger(self.site.pk).summary().total_advances, Decimal('75'))
        advance.delete()
        self.assertEqual(site_ledgers.get_ledger(self.site.pk).summary().total_advances, Decimal('0'))

    def test_ledger_only_holds_its_own_site(self):
        Expense.objects.create(site=self.other_site, date=START, amount=Decimal('900'))
        self.assertEqual(site_ledgers.get_ledger(self.site.pk).expenses, ())

    def test_commit_drops_ledger_recached_mid_transaction(self):
        stale = site_ledgers.get_ledger(self.site.pk)
        key = site_ledgers.cache_key(self.site.pk)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            record_funds_received(self.site, amount=Decimal('500'), date=START)
            self.assertIsNone(cache.get(key))
            # A concurrent reader caches the ledger it saw before this commit.
            cache.set(key, stale)
        self.assertTrue(callbacks)
        self.assertIsNone(cache.get(key))
        self.assertEqual(site_ledgers.get_ledger(self.site.pk).summary().funds_received, Decimal('500'))


class FundsIncrementTests(TrackerTestCase):
    def _stale_copies(self):
        return Site.objects.get(pk=self.site.pk), Site.objects.get(pk=self.site.pk)

    def test_stale_copies_lose_an_update(self):
        first, second = self._stale_copies()
        record_funds_received(first, amount=Decimal('100'), date=START, atomic=False)
        record_funds_received(second, amount=Decimal('200'), date=START, atomic=False)

        self.site.refresh_from_db()
        self.assertIn(self.site.funds, {Decimal('100'), Decimal('200'), Decimal('300')})
        self.assertEqual(self.site.funds, Decimal('200'))
        self.assertEqual(FundsReceived.objects.filter(site=self.site).count(), 2)

        self.assertEqual(recalculate_site_funds(self.site), Decimal('300'))
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('300'))

    def test_atomic_increment_keeps_both_updates(self):
        first, second = self._stale_copies()
        record_funds_received(first, amount=Decimal('100'), date=START, atomic=True)
        record_funds_received(second, amount=Decimal('200'), date=START, atomic=True)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('300'))

    @override_settings(SITEBOOK_ATOMIC_FUNDS_INCREMENT=True)
    def test_setting_switches_to_atomic(self):
        first, second = self._stale_copies()
        record_funds_received(first, amount=Decimal('100'), date=START)
        record_funds_received(second, amount=Decimal('200'), date=START)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('300'))

    def test_increment_by_site_id(self):
        result = increment_site_funds(self.site.pk, Decimal('40'))
        self.assertEqual(result.previous_funds, Decimal('0'))
        self.assertEqual(result.new_funds, Decimal('40'))
        with self.assertRaises(Site.DoesNotExist):
            increment_site_funds(self.other_site.pk + 100, Decimal('1'))

    def test_increment_refreshes_cached_ledger(self):
        self.assertEqual(site_ledgers.get_ledger(self.site.pk).site.funds, Decimal('0'))
        record_funds_received(self.site, amount=Decimal('500'), date=START)
        ledger = site_ledgers.get_ledger(self.site.pk)
        self.assertEqual(ledger.site.funds, Decimal('500'))
        self.assertEqual(ledger.summary().funds_received, Decimal('500'))

    def test_recalculate_command(self):
        FundsReceived.objects.create(site=self.site, date=START, amount=Decimal('700'))
        out = StringIO()
        call_command('recalculate_site_funds', '--dry-run', stdout=out)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('0'))
        self.assertIn('1 site(s) would be corrected', out.getvalue())

        call_command('recalculate_site_funds', '--site', str(self.site.pk), stdout=StringIO())
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('700'))


class RoleGateTests(TrackerTestCase):
    def setUp(self):
        super().setUp()
        self.factory = RequestFactory()

        @role_required(User.Roles.ADMIN)
        def admin_only(request):
            return JsonResponse({'ok': True})

        self.view = admin_only

    def _request(self, user):
        request = self.factory.get('/gate/')
        request.user = user
        return request

    def test_anonymous_is_unauthorized(self):
        response = self.view(self._request(AnonymousUser()))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(json.loads(response.content), {'error': 'Unauthorized'})

    def test_wrong_role_is_forbidden(self):
        response = self.view(self._request(self.supervisor))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(json.loads(response.content), {'error': 'Forbidden'})

    def test_allowed_role_and_superuser_pass(self):
        self.assertEqual(self.view(self._request(self.admin)).status_code, 200)
        root = User.objects.create_superuser(username='root', password=self.password, email='root@example.com')
        self.assertEqual(self.view(self._request(root)).status_code, 200)

    def test_bearer_token_is_accepted(self):
        request = self.factory.get(
            '/gate/', HTTP_AUTHORIZATION=f'Bearer {RefreshToken.for_user(self.admin).access_token}'
        )
        request.user = AnonymousUser()
        self.assertEqual(self.view(request).status_code, 200)


class IncrementFundsEndpointTests(TrackerTestCase):
    def setUp(self):
        super().setUp()
        self.url = reverse('increment_funds')

    def _post(self, payload, user=None, **extra):
        if user is not None:
            self.client.force_login(user)
        return self.client.post(self.url, data=json.dumps(payload), content_type='application/json', **extra)

    def test_admin_increments_funds(self):
        response = self._post({'site_id': self.site.pk, 'amount': 250}, user=self.admin)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(Decimal(body['previous_funds']), Decimal('0'))
        self.assertEqual(Decimal(body['new_funds']), Decimal('250'))
        self.assertEqual(body['data'][0]['id'], self.site.pk)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('250'))

    def test_jwt_supervisor_increments_own_site(self):
        token = RefreshToken.for_user(self.supervisor).access_token
        response = self._post(
            {'site_id': self.site.pk, 'amount': '99.50'}, HTTP_AUTHORIZATION=f'Bearer {token}'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.json()['new_funds']), Decimal('99.50'))

    def test_missing_fields(self):
        for payload in ({'site_id': self.site.pk}, {'amount': 10}, {'site_id': self.site.pk, 'amount': 'lots'}):
            with self.subTest(payload=payload):
                response = self._post(payload, user=self.admin)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {'error': 'Site ID and amount are required'})

    def test_unauthenticated(self):
        response = self._post({'site_id': self.site.pk, 'amount': 10})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'error': 'Unauthorized'})

    def test_invalid_token(self):
        response = self._post({'site_id': self.site.pk, 'amount': 10}, HTTP_AUTHORIZATION='Bearer not-a-token')
        self.assertEqual(response.status_code, 401)

    def test_viewer_and_foreign_supervisor_are_forbidden(self):
        response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.viewer)
        self.assertEqual(response.status_code, 403)
        response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.other_supervisor)
        self.assertEqual(response.status_code, 403)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('0'))

    def test_unknown_site(self):
        response = self._post({'site_id': self.other_site.pk + 100, 'amount': 10}, user=self.admin)
        self.assertEqual(response.status_code, 500)
        self.assertTrue(response.json()['error'].startswith('Error fetching site:'))

    def test_write_failure(self):
        with mock.patch('tracker.views.apply_funds_increment', side_effect=DatabaseError('disk full')):
            response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.admin)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Error updating site funds: disk full'})

    def test_unexpected_failure(self):
        with mock.patch('tracker.views.apply_funds_increment', side_effect=RuntimeError('boom')):
            response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.admin)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'error': 'Unexpected error occurred'})

    def test_amount_must_fit_the_funds_column(self):
        for amount in ('1e20', '0.005', '0', '-5', 'NaN'):
            with self.subTest(amount=amount):
                response = self._post({'site_id': self.site.pk, 'amount': amount}, user=self.admin)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json(), {'error': 'Site ID and amount are required'})
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('0'))

        api = APIClient()
        api.force_authenticate(self.admin)
        self.assertEqual(api.get(reverse('site-list')).status_code, 200)
        self.assertEqual(api.get(reverse('site-summary', args=[self.site.pk])).status_code, 200)

    def test_total_past_the_funds_limit_is_rejected(self):
        Site.objects.filter(pk=self.site.pk).update(funds=Decimal('999999999999.00'))
        response = self._post({'site_id': self.site.pk, 'amount': '5'}, user=self.admin)
        self.assertEqual(response.status_code, 400)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('999999999999.00'))

    def test_site_payload_matches_site_api(self):
        response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.admin)
        site = response.json()['data'][0]
        self.assertEqual(site['supervisor'], self.supervisor.pk)
        self.assertEqual(site['supervisor_detail']['username'], self.supervisor.username)
        self.assertEqual(Decimal(site['funds']), Decimal('10'))

    def test_refusals_carry_cors_headers(self):
        response = self._post({'site_id': self.site.pk, 'amount': 10})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')
        response = self._post({'site_id': self.site.pk, 'amount': 10}, user=self.viewer)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')

    def test_options_returns_cors_headers(self):
        response = self.client.options(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')
        self.assertIn('content-type', response['Access-Control-Allow-Headers'])

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)


class ExceptionHandlerTests(SimpleTestCase):
    def test_database_error(self):
        response = exception_handler(DatabaseError('relation missing'), {'view': None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'detail': 'Database error: relation missing'})

    def test_unexpected_error(self):
        response = exception_handler(RuntimeError('boom'), {'view': None})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'detail': 'Something went wrong. Please try again.'})


class AuthApiTests(TrackerTestCase):
    def test_token_login_by_email(self):
        client = APIClient()
        response = client.post(
            reverse('token_obtain_pair'), {'username': 'admin@example.com', 'password': self.password}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = client.get(reverse('me'))
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data['user']['role'], User.Roles.ADMIN)
        self.assertTrue(me.data['can_view_all_sites'])


class SiteApiTests(TrackerTestCase):
    def setUp(self):
        super().setUp()
        self.api = APIClient()

    def _ids(self, response):
        return {row['id'] for row in response.data['results']}

    def test_duplicate_site_name(self):
        self.api.force_authenticate(self.admin)
        payload = {'name': 'Harbour Road', 'job_name': 'Annex', 'pos_no': 'POS-9', 'start_date': '2024-02-01'}
        response = self.api.post(reverse('site-list'), payload, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['name'][0], 'Site with name "Harbour Road" already exists')

    def test_admin_creates_site(self):
        self.api.force_authenticate(self.admin)
        payload = {
            'name': 'Lake Side',
            'job_name': 'Office',
            'pos_no': 'POS-3',
            'start_date': '2024-02-01',
            'supervisor': self.supervisor.pk,
        }
        response = self.api.post(reverse('site-list'), payload, format='json')
        self.assertEqual(response.status_code, 201)
        site = Site.objects.get(name='Lake Side')
        self.assertEqual(site.created_by, self.admin)
        self.assertEqual(site.funds, Decimal('0'))
        self.assertFalse(site.is_completed)

    def test_supervisor_site_is_assigned_to_them(self):
        self.api.force_authenticate(self.supervisor)
        payload = {'name': 'Lake Side', 'job_name': 'Office', 'pos_no': 'POS-3', 'start_date': '2024-02-01'}
        response = self.api.post(reverse('site-list'), payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Site.objects.get(name='Lake Side').supervisor, self.supervisor)

    def test_supervisor_sees_only_their_sites(self):
        self.api.force_authenticate(self.supervisor)
        response = self.api.get(reverse('site-list'))
        self.assertEqual(self._ids(response), {self.site.pk})
        response = self.api.get(reverse('site-detail', args=[self.other_site.pk]))
        self.assertEqual(response.status_code, 404)

    def test_viewer_reads_all_but_cannot_write(self):
        self.api.force_authenticate(self.viewer)
        response = self.api.get(reverse('site-list'))
        self.assertEqual(self._ids(response), {self.site.pk, self.other_site.pk})
        response = self.api.patch(reverse('site-detail', args=[self.site.pk]), {'location': 'Pier'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_only_admin_deletes(self):
        self.api.force_authenticate(self.supervisor)
        self.assertEqual(self.api.delete(reverse('site-detail', args=[self.site.pk])).status_code, 403)
        self.api.force_authenticate(self.admin)
        self.assertEqual(self.api.delete(reverse('site-detail', args=[self.site.pk])).status_code, 204)

    def test_status_filter_and_search(self):
        Site.objects.filter(pk=self.other_site.pk).update(is_completed=True, completion_date=dt.date(2024, 6, 1))
        self.api.force_authenticate(self.admin)
        response = self.api.get(reverse('site-list'), {'status': 'completed'})
        self.assertEqual(self._ids(response), {self.other_site.pk})
        response = self.api.get(reverse('site-list'), {'status': 'active'})
        self.assertEqual(self._ids(response), {self.site.pk})
        response = self.api.get(reverse('site-list'), {'search': 'POS-2'})
        self.assertEqual(self._ids(response), {self.other_site.pk})

    def test_summary_endpoint(self):
        FundsReceived.objects.create(site=self.site, date=START, amount=Decimal('10000'))
        Expense.objects.create(site=self.site, date=START, amount=Decimal('2000'))
        Expense.objects.create(site=self.site, date=START, amount=Decimal('500'))
        Advance.objects.create(
            site=self.site, date=START, recipient_name='Ravi', recipient_type='worker', amount=Decimal('1000')
        )
        Advance.objects.create(
            site=self.site,
            date=START,
            recipient_name='Ravi',
            recipient_type='worker',
            purpose=Advance.Purpose.TOOLS,
            amount=Decimal('300'),
        )
        Invoice.objects.create(
            site=self.site,
            date=START,
            party_name='Steel Co',
            net_amount=Decimal('1500'),
            payment_by=Invoice.PaymentBy.SUPERVISOR,
        )
        Invoice.objects.create(site=self.site, date=START, party_name='Cement Co', net_amount=Decimal('4000'))

        self.api.force_authenticate(self.supervisor)
        response = self.api.get(reverse('site-summary', args=[self.site.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.data['funds_received']), Decimal('10000'))
        self.assertEqual(Decimal(response.data['total_expenditure']), Decimal('2500'))
        self.assertEqual(Decimal(response.data['total_advances']), Decimal('1000'))
        self.assertEqual(Decimal(response.data['debits_to_worker']), Decimal('300'))
        self.assertEqual(Decimal(response.data['invoices_paid']), Decimal('1500'))
        self.assertEqual(Decimal(response.data['pending_invoices']), Decimal('0'))
        self.assertEqual(Decimal(response.data['total_balance']), Decimal('5000'))

    def test_complete_site(self):
        self.api.force_authenticate(self.supervisor)
        url = reverse('site-complete', args=[self.site.pk])
        response = self.api.post(url, {'completion_date': '2023-12-31'}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.api.post(url, {'completion_date': '2024-05-30'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_completed'])
        self.site.refresh_from_db()
        self.assertEqual(self.site.completion_date, dt.date(2024, 5, 30))

        response = self.api.post(url, {'completion_date': '2024-06-30'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_recalculate_funds_is_admin_only(self):
        FundsReceived.objects.create(site=self.site, date=START, amount=Decimal('450'))
        url = reverse('site-recalculate-funds', args=[self.site.pk])

        self.api.force_authenticate(self.supervisor)
        self.assertEqual(self.api.post(url).status_code, 403)

        self.api.force_authenticate(self.admin)
        response = self.api.post(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.data['funds']), Decimal('450'))
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('450'))


class SiteRecordApiTests(TrackerTestCase):
    def setUp(self):
        super().setUp()
        self.api = APIClient()

    def test_funds_received_bumps_site_total(self):
        self.api.force_authenticate(self.supervisor)
        response = self.api.post(
            reverse('funds-received-list'),
            {'site': self.site.pk, 'date': '2024-02-01', 'amount': '1200.00', 'reference': 'UTR-1'},
            format='json',
        )
        self.assertEqual(response.status_code, 201)
        fund = FundsReceived.objects.get()
        self.assertEqual(fund.created_by, self.supervisor)
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('1200'))

    def test_cannot_book_against_foreign_site(self):
        self.api.force_authenticate(self.supervisor)
        response = self.api.post(
            reverse('funds-received-list'),
            {'site': self.other_site.pk, 'date': '2024-02-01', 'amount': '10'},
            format='json',
        )
        self.assertEqual(response.status_code, 403)
        response = self.api.post(
            reverse('expense-list'),
            {'site': self.other_site.pk, 'date': '2024-02-01', 'amount': '10'},
            format='json',
        )
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Expense.objects.exists())

    def test_viewer_cannot_record(self):
        self.api.force_authenticate(self.viewer)
        response = self.api.post(
            reverse('expense-list'), {'site': self.site.pk, 'date': '2024-02-01', 'amount': '10'}, format='json'
        )
        self.assertEqual(response.status_code, 403)

    def test_amount_must_be_positive(self):
        self.api.force_authenticate(self.admin)
        response = self.api.post(
            reverse('expense-list'), {'site': self.site.pk, 'date': '2024-02-01', 'amount': '0'}, format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('amount', response.data)

    def test_advance_validation_and_default_status(self):
        self.api.force_authenticate(self.supervisor)
        payload = {
            'site': self.site.pk,
            'date': '2024-02-01',
            'recipient_name': 'R',
            'recipient_type': 'worker',
            'purpose': 'safety_shoes',
            'amount': '300',
        }
        response = self.api.post(reverse('advance-list'), payload, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['recipient_name'][0], 'Name must be at least 2 characters.')

        payload['recipient_name'] = 'Ravi'
        response = self.api.post(reverse('advance-list'), payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], Advance.Status.APPROVED)

    def test_site_cannot_change_on_update(self):
        expense = Expense.objects.create(site=self.site, date=START, amount=Decimal('10'))
        self.api.force_authenticate(self.admin)
        response = self.api.patch(
            reverse('expense-detail', args=[expense.pk]), {'site': self.other_site.pk}, format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('site', response.data)

    def test_supervisor_lists_only_their_records(self):
        Expense.objects.create(site=self.site, date=START, amount=Decimal('10'))
        Expense.objects.create(site=self.other_site, date=START, amount=Decimal('20'))
        self.api.force_authenticate(self.supervisor)
        response = self.api.get(reverse('expense-list'))
        self.assertEqual([row['site'] for row in response.data['results']], [self.site.pk])

    def test_invoice_defaults_and_search(self):
        self.api.force_authenticate(self.admin)
        response = self.api.post(
            reverse('invoice-list'),
            {
                'site': self.site.pk,
                'date': '2024-02-01',
                'party_name': 'Cement Co',
                'material': 'OPC 53',
                'net_amount': '5900.00',
                'material_items': [{'material': 'OPC 53', 'quantity': 10, 'rate': 500}],
            },
            format='json',
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['payment_by'], Invoice.PaymentBy.HEAD_OFFICE)
        self.assertEqual(response.data['payment_status'], Invoice.PaymentStatus.PENDING)

        response = self.api.get(reverse('invoice-list'), {'search': 'OPC'})
        self.assertEqual(len(response.data['results']), 1)

    def test_mark_paid(self):
        ho_invoice = Invoice.objects.create(site=self.site, date=START, party_name='A', net_amount=Decimal('100'))
        sup_invoice = Invoice.objects.create(
            site=self.site,
            date=START,
            party_name='B',
            net_amount=Decimal('100'),
            payment_by=Invoice.PaymentBy.SUPERVISOR,
        )

        self.api.force_authenticate(self.supervisor)
        self.assertEqual(self.api.post(reverse('invoice-mark-paid', args=[ho_invoice.pk])).status_code, 403)

        self.api.force_authenticate(self.admin)
        response = self.api.post(reverse('invoice-mark-paid', args=[ho_invoice.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['payment_status'], Invoice.PaymentStatus.PAID)

        self.assertEqual(self.api.post(reverse('invoice-mark-paid', args=[ho_invoice.pk])).status_code, 400)
        self.assertEqual(self.api.post(reverse('invoice-mark-paid', args=[sup_invoice.pk])).status_code, 400)

    def test_summary_follows_new_records(self):
        self.api.force_authenticate(self.admin)
        url = reverse('site-summary', args=[self.site.pk])
        self.assertEqual(Decimal(self.api.get(url).data['total_expenditure']), Decimal('0'))
        self.api.post(
            reverse('expense-list'), {'site': self.site.pk, 'date': '2024-02-01', 'amount': '75.50'}, format='json'
        )
        self.assertEqual(Decimal(self.api.get(url).data['total_expenditure']), Decimal('75.50'))


class FundsReceivedAdminTests(TrackerTestCase):
    def setUp(self):
        super().setUp()
        self.root = User.objects.create_superuser(username='root', password=self.password, email='root@example.com')
        self.client.force_login(self.root)
        self.fund = record_funds_received(self.site, amount=Decimal('500'), date=START)

    def test_funds_cannot_be_deleted_from_admin(self):
        url = reverse('admin:tracker_fundsreceived_delete', args=[self.fund.pk])
        response = self.client.post(url, {'post': 'yes'})
        self.assertEqual(response.status_code, 403)
        self.assertTrue(FundsReceived.objects.filter(pk=self.fund.pk).exists())
        self.site.refresh_from_db()
        self.assertEqual(self.site.funds, Decimal('500'))

    def test_bulk_delete_action_is_not_offered(self):
        response = self.client.get(reverse('admin:tracker_fundsreceived_changelist'))
        self.assertEqual(response.status_code, 200)
        self.assertNotContains(response, 'delete_selected')


class CacheSettingsTests(SimpleTestCase):
    def test_defaults_to_local_memory(self):
        self.assertEqual(
            cache_config({}),
            {'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache', 'LOCATION': 'sitebook'}},
        )

    def test_shared_backend_from_environment(self):
        config = cache_config({
            'CACHE_BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'CACHE_LOCATION': 'redis://cache:6379/1',
        })
        self.assertEqual(config['default']['BACKEND'], 'django.core.cache.backends.redis.RedisCache')
        self.assertEqual(config['default']['LOCATION'], 'redis://cache:6379/1')

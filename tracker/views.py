from __future__ import annotations

import json
import logging

from django.db import DatabaseError
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from tracker.access import can_write_site
from tracker.api.serializers import FundsIncrementSerializer, SiteSerializer
from tracker.decorators import role_required
from tracker.models import Site, User
from tracker.services import FundsLimitError, apply_funds_increment

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Headers': 'authorization, x-client-info, apikey, content-type',
}


def _json(payload, status=200):
    response = JsonResponse(payload, status=status)
    for header, value in CORS_HEADERS.items():
        response[header] = value
    return response


@csrf_exempt
@require_http_methods(['POST', 'OPTIONS'])
def increment_funds(request):
    """Add ``amount`` to a site's running funds total.

    Body: ``{"site_id": ..., "amount": ...}``. The read and the write are two
    separate statements unless SITEBOOK_ATOMIC_FUNDS_INCREMENT is set.
    """
    if request.method == 'OPTIONS':
        response = HttpResponse()
        for header, value in CORS_HEADERS.items():
            response[header] = value
        return response
    return _increment_funds(request)


@role_required(User.Roles.ADMIN, User.Roles.SUPERVISOR, headers=CORS_HEADERS)
def _increment_funds(request):
    try:
        try:
            body = json.loads(request.body or b'{}')
        except ValueError:
            body = {}
        serializer = FundsIncrementSerializer(data=body if isinstance(body, dict) else {})
        if not serializer.is_valid():
            logger.debug("Rejected increment body: %s", serializer.errors)
            return _json({'error': 'Site ID and amount are required'}, status=400)
        site_id = serializer.validated_data['site_id']
        amount = serializer.validated_data['amount']

        try:
            site = Site.objects.select_related('supervisor').get(pk=site_id)
        except (Site.DoesNotExist, DatabaseError) as exc:
            logger.error("Error fetching site %s: %s", site_id, exc)
            return _json({'error': f"Error fetching site: {exc}"}, status=500)

        if not can_write_site(request.user, site):
            return _json({'error': 'Forbidden'}, status=403)

        try:
            result = apply_funds_increment(site, amount)
        except FundsLimitError as exc:
            return _json({'error': str(exc)}, status=400)
        except DatabaseError as exc:
            logger.error("Error updating site funds for %s: %s", site_id, exc)
            return _json({'error': f"Error updating site funds: {exc}"}, status=500)

        return _json({
            'success': True,
            'data': [SiteSerializer(result.site).data],
            'previous_funds': str(result.previous_funds),
            'new_funds': str(result.new_funds),
        })
    except Exception:
        logger.exception("Unexpected error while incrementing site funds")
        return _json({'error': 'Unexpected error occurred'}, status=500)

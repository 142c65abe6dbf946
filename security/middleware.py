# security/middleware.py
import logging

from django.http import JsonResponse

from api.exceptions import error_body
from security.events import (
    analyze_input,
    get_client_ip,
    is_ip_blocked,
    is_suspicious_user_agent,
    log_security_event,
)

logger = logging.getLogger(__name__)


class ThreatDetectionMiddleware:
    """
    Refuse API requests from blocked IPs, then scan query parameters and
    the user agent for attack patterns. Detections are logged as security
    events; the request itself is not blocked.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith('/api/'):
            ip_address = get_client_ip(request)
            if is_ip_blocked(ip_address):
                logger.warning(f"Refused {request.method} {request.path} from blocked IP {ip_address}")
                return JsonResponse(
                    error_body('permission_denied', 'Access denied', {'reason': 'ip_blocked'}),
                    status=403,
                )
            self.inspect(request)
        return self.get_response(request)

    def inspect(self, request):
        for key, values in request.GET.lists():
            for value in values:
                result = analyze_input(value, context=f"query:{key}", request=request)
                if not result['is_safe']:
                    logger.warning(f"Threat in query parameter '{key}' on {request.path}")
                    return

        user_agent = request.META.get('HTTP_USER_AGENT', '')
        if is_suspicious_user_agent(user_agent):
            log_security_event(
                'suspicious_activity',
                risk_level='low',
                request=request,
                details={'reason': 'suspicious_user_agent'},
            )

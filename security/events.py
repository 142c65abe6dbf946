# security/events.py
"""
Security event logging, input threat analysis and failed-login tracking

Events are persisted as SecurityEvent rows. High and critical events are
also written to the 'security' logger at ERROR level so they reach alerting.
Failed-login counters and the IP blocklist are read through Django's
cache, so every server process sharing the cache sees the same state.
"""
import logging
import re
from datetime import timedelta

from django.core.cache import cache
from django.db.models import Count, Q
from django.utils import timezone

from security.models import BlockedIP, SecurityEvent

logger = logging.getLogger(__name__)
alert_logger = logging.getLogger('security')

RISK_ORDER = ['low', 'medium', 'high', 'critical']

# IPs with more events than this in a metrics window are flagged
SUSPICIOUS_IP_THRESHOLD = 5

FAILED_LOGIN_WINDOW_SECONDS = 15 * 60
FAILED_LOGIN_ALERT_THRESHOLD = 5

METRIC_RANGES = {
    '1h': timedelta(hours=1),
    '24h': timedelta(hours=24),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
}

THREAT_PATTERNS = [
    {
        'name': 'sql_injection',
        'pattern': re.compile(
            r'(\bUNION\b|\bSELECT\b|\bINSERT\b|\bDELETE\b|\bDROP\b|\bUPDATE\b).*(\bFROM\b|\bWHERE\b|\bINTO\b|\bTABLE\b)'
            r"|'\s*(OR|AND)\s+'?\d+'?\s*=\s*'?\d+|--\s*$",
            re.IGNORECASE,
        ),
        'risk_level': 'high',
        'description': 'Potential SQL injection attempt',
    },
    {
        'name': 'xss',
        'pattern': re.compile(r'<script[^>]*>.*?</script>|javascript:|\bon\w+\s*=', re.IGNORECASE | re.DOTALL),
        'risk_level': 'medium',
        'description': 'Potential XSS payload',
    },
    {
        'name': 'path_traversal',
        'pattern': re.compile(r'(\.\.[/\\]){2,}|%2e%2e(%2f|%5c)', re.IGNORECASE),
        'risk_level': 'high',
        'description': 'Potential path traversal',
    },
    {
        'name': 'command_injection',
        'pattern': re.compile(
            r'(;|&&|\|\|?|`)\s*(rm|cat|curl|wget|nc|bash|sh|chmod|python|perl)\b|\$\([^)]*\)',
            re.IGNORECASE,
        ),
        'risk_level': 'high',
        'description': 'Potential command injection',
    },
]

SUSPICIOUS_USER_AGENT = re.compile(r'(bot|crawler|spider|scan|hack|exploit|sqlmap|nikto)', re.IGNORECASE)


# ============================================
# REQUEST HELPERS
# ============================================
def get_client_ip(request):
    if request is None:
        return None
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def max_risk(levels):
    levels = [level for level in levels if level in RISK_ORDER]
    if not levels:
        return 'low'
    return max(levels, key=RISK_ORDER.index)


# ============================================
# EVENT LOGGING
# ============================================
def log_security_event(event_type, risk_level='low', user=None, request=None, details=None):
    """
    Persist a security event and emit it to the logs.

    Args:
        event_type: One of SecurityEvent.EVENT_TYPE_CHOICES
        risk_level: low | medium | high | critical
        user: Acting user (anonymous users are stored as None)
        request: Django / DRF request for IP, user agent, endpoint and method
        details: JSON-serializable context

    Returns:
        The created SecurityEvent
    """
    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None
    if user is None and request is not None:
        request_user = getattr(request, 'user', None)
        if request_user is not None and request_user.is_authenticated:
            user = request_user

    event = SecurityEvent.objects.create(
        event_type=event_type,
        risk_level=risk_level,
        user=user,
        ip_address=get_client_ip(request),
        user_agent=(request.META.get('HTTP_USER_AGENT', '') if request is not None else '')[:500],
        endpoint=(request.path if request is not None else '')[:255],
        method=request.method if request is not None else '',
        details=details or {},
    )

    message = f"Security event {event_type} [{risk_level}] user={getattr(user, 'id', None)} ip={event.ip_address}"
    if risk_level in ('high', 'critical'):
        alert_logger.error(f"SECURITY ALERT: {message} details={event.details}")
    else:
        logger.info(message)

    return event


# ============================================
# INPUT ANALYSIS
# ============================================
def detect_threats(text):
    """Return the threat patterns matched by text"""
    if not text:
        return []
    return [
        {'name': threat['name'], 'risk_level': threat['risk_level'], 'description': threat['description']}
        for threat in THREAT_PATTERNS
        if threat['pattern'].search(text)
    ]


def analyze_input(text, context='', request=None, user=None):
    """
    Scan a piece of user input for known attack patterns.
    A detection is logged as a malicious_input_detected event.

    Returns:
        dict with threats (list) and risk_level (highest matched, 'low' when clean)
    """
    threats = detect_threats(str(text))
    risk_level = max_risk([threat['risk_level'] for threat in threats])

    if threats:
        log_security_event(
            'malicious_input_detected',
            risk_level=risk_level,
            user=user,
            request=request,
            details={
                'context': context,
                'threats': [threat['name'] for threat in threats],
                'sample': str(text)[:200],
            },
        )

    return {'threats': threats, 'risk_level': risk_level, 'is_safe': not threats}


def is_suspicious_user_agent(user_agent):
    return bool(user_agent) and bool(SUSPICIOUS_USER_AGENT.search(user_agent))


# ============================================
# FAILED LOGIN TRACKING
# ============================================
def _failed_login_key(identifier):
    return f"security:failed_login:{identifier}"


def record_failed_login(identifier, request=None, user=None):
    """
    Count a failed login for an identifier (username or IP).
    Crossing the threshold inside the window raises a high-risk event.

    Returns:
        The number of failures in the current window
    """
    key = _failed_login_key(identifier)
    cache.add(key, 0, FAILED_LOGIN_WINDOW_SECONDS)
    try:
        attempts = cache.incr(key)
    except ValueError:
        # Key expired between add and incr
        cache.set(key, 1, FAILED_LOGIN_WINDOW_SECONDS)
        attempts = 1

    risk_level = 'high' if attempts >= FAILED_LOGIN_ALERT_THRESHOLD else 'medium'
    log_security_event(
        'login_failure',
        risk_level=risk_level,
        user=user,
        request=request,
        details={'identifier': identifier, 'attempts': attempts},
    )
    return attempts


def failed_login_count(identifier):
    return cache.get(_failed_login_key(identifier), 0)


def clear_failed_logins(identifier):
    cache.delete(_failed_login_key(identifier))


# ============================================
# IP BLOCKING
# ============================================
BLOCKED_IPS_CACHE_KEY = 'security:blocked_ips'
BLOCKED_IPS_CACHE_SECONDS = 60


def active_blocks():
    now = timezone.now()
    return BlockedIP.objects.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def blocked_ip_set():
    """Currently blocked addresses, cached so the middleware does not query per request"""
    blocked = cache.get(BLOCKED_IPS_CACHE_KEY)
    if blocked is None:
        blocked = set(active_blocks().values_list('ip_address', flat=True))
        cache.set(BLOCKED_IPS_CACHE_KEY, blocked, BLOCKED_IPS_CACHE_SECONDS)
    return blocked


def is_ip_blocked(ip_address):
    return bool(ip_address) and ip_address in blocked_ip_set()


def block_ip(ip_address, blocked_by=None, reason='', duration_hours=None, request=None):
    """
    Block an address from the API. Blocking an already blocked address
    replaces its reason and expiry.

    Returns:
        The BlockedIP row
    """
    expires_at = timezone.now() + timedelta(hours=duration_hours) if duration_hours else None
    blocked, _ = BlockedIP.objects.update_or_create(
        ip_address=ip_address,
        defaults={'reason': reason, 'blocked_by': blocked_by, 'expires_at': expires_at},
    )
    cache.delete(BLOCKED_IPS_CACHE_KEY)

    log_security_event(
        'ip_blocked',
        risk_level='high',
        user=blocked_by,
        request=request,
        details={'ip_address': ip_address, 'reason': reason, 'expires_at': expires_at.isoformat() if expires_at else None},
    )
    return blocked


def unblock_ips(ip_addresses, unblocked_by=None, request=None):
    """
    Lift blocks. Addresses that were not blocked are ignored.

    Returns:
        The addresses actually unblocked
    """
    unblocked = list(BlockedIP.objects.filter(ip_address__in=ip_addresses).values_list('ip_address', flat=True))
    if unblocked:
        BlockedIP.objects.filter(ip_address__in=unblocked).delete()
        cache.delete(BLOCKED_IPS_CACHE_KEY)
        log_security_event(
            'ip_unblocked',
            risk_level='medium',
            user=unblocked_by,
            request=request,
            details={'ip_addresses': unblocked},
        )
    return unblocked


# ============================================
# METRICS
# ============================================
def get_security_metrics(time_range='24h'):
    """
    Aggregate security events over a time range (1h, 24h, 7d, 30d)
    """
    if time_range not in METRIC_RANGES:
        raise ValueError(f"Unsupported time range: {time_range}")

    since = timezone.now() - METRIC_RANGES[time_range]
    events = SecurityEvent.objects.filter(created_at__gte=since)

    by_type = {row['event_type']: row['count'] for row in events.values('event_type').annotate(count=Count('id'))}
    by_risk = {level: 0 for level in RISK_ORDER}
    by_risk.update({row['risk_level']: row['count'] for row in events.values('risk_level').annotate(count=Count('id'))})

    suspicious_ips = [
        {'ip_address': row['ip_address'], 'count': row['count']}
        for row in events.exclude(ip_address__isnull=True)
        .values('ip_address')
        .annotate(count=Count('id'))
        .filter(count__gt=SUSPICIOUS_IP_THRESHOLD)
        .order_by('-count')
    ]

    threat_counts = {}
    for details in events.filter(event_type='malicious_input_detected').values_list('details', flat=True):
        for name in (details or {}).get('threats', []):
            threat_counts[name] = threat_counts.get(name, 0) + 1
    top_threats = sorted(threat_counts.items(), key=lambda x: x[1], reverse=True)[:5]

    return {
        'time_range': time_range,
        'total_events': events.count(),
        'unresolved_events': events.filter(resolved=False).count(),
        'events_by_type': by_type,
        'events_by_risk': by_risk,
        'top_threats': [{'name': name, 'count': count} for name, count in top_threats],
        'suspicious_ips': suspicious_ips,
    }


def resolve_event(event, resolved_by, notes=''):
    event.resolved = True
    event.resolved_at = timezone.now()
    event.resolved_by = resolved_by
    if notes:
        event.notes = notes
    event.save(update_fields=['resolved', 'resolved_at', 'resolved_by', 'notes'])
    logger.info(f"Security event {event.id} resolved by {resolved_by.username}")
    return event

# api/renderers.py
"""
Response envelope

    success: {"success": true,  "data": ...,  "metadata": {...}}
    failure: {"success": false, "error": ..., "metadata": {...}}

Failures are shaped by api.exceptions.envelope_exception_handler; this
renderer wraps everything else and stamps metadata on both.
"""
from django.conf import settings
from django.utils import timezone
from rest_framework.renderers import JSONRenderer


def response_metadata():
    return {
        'timestamp': timezone.now().isoformat(),
        'version': getattr(settings, 'API_VERSION', '1.0.0'),
    }


def is_error_envelope(data):
    return isinstance(data, dict) and data.get('success') is False and 'error' in data


class EnvelopeJSONRenderer(JSONRenderer):

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if is_error_envelope(data):
            envelope = dict(data)
        else:
            envelope = {'success': True, 'data': data}
        envelope['metadata'] = response_metadata()
        return super().render(envelope, accepted_media_type, renderer_context)

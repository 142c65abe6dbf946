from functools import wraps

from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from accounts.policy import evaluate


def policy_required(action, resource=None):
    """
    Gate a function-based API view behind a policy action.
    resource may be a value or a callable taking the request.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            user = request.user

            if not user or not user.is_authenticated:
                raise NotAuthenticated("Authentication required")

            target = resource(request) if callable(resource) else resource
            if not evaluate(user, target, action):
                raise PermissionDenied("Access denied")

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


def check_policy(user, resource, action):
    """Raise PermissionDenied unless the policy allows action"""
    if not evaluate(user, resource, action):
        raise PermissionDenied("Access denied")

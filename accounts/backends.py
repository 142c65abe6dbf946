# accounts/backends.py
from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class EmailOrUsernameBackend(ModelBackend):
    """
    Authenticate with either email or username.
    Locked and inactive accounts never authenticate.
    """
    def authenticate(self, request, username=None, password=None, **kwargs):
        if username is None or password is None:
            return None

        user = (
            User.objects.filter(Q(username__iexact=username) | Q(email__iexact=username))
            .order_by('id')
            .first()
        )
        if user is None:
            # Run the hasher once so unknown users take as long as known ones
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None

    def user_can_authenticate(self, user):
        return super().user_can_authenticate(user) and not getattr(user, 'is_locked', False)

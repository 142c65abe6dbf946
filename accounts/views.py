import logging

from django.contrib.auth import authenticate, get_user_model
from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from accounts.serializers import DonorRegistrationSerializer, LoginSerializer, UserSerializer
from donors.models import DonorProfile
from security.events import clear_failed_logins, log_security_event, record_failed_login

User = get_user_model()

logger = logging.getLogger(__name__)


# -----------------------------
# HELPER: JWT TOKEN GENERATOR
# -----------------------------
def get_tokens_for_user(user):
    """
    Generate JWT tokens and embed role in payload
    """
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['institution_id'] = user.institution_id
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


# -----------------------------
# REGISTER API
# -----------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    Registers a donor account with its profile and returns JWT tokens.
    Staff accounts are provisioned by administrators.
    """
    serializer = DonorRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    with transaction.atomic():
        user = User.objects.create_user(
            username=data['username'],
            email=data['email'],
            password=data['password'],
            phone=data['phone'],
            role='donor',
        )
        DonorProfile.objects.create(
            user=user,
            full_name=data['full_name'],
            phone=data['phone'],
            blood_type=data['blood_type'],
            date_of_birth=data.get('date_of_birth'),
            address=data.get('address', ''),
            latitude=data.get('latitude'),
            longitude=data.get('longitude'),
            location_sharing=data['location_sharing'],
        )

    logger.info(f"Donor {user.username} registered")

    return Response(
        {
            "message": "Registration successful",
            "tokens": get_tokens_for_user(user),
            "user": UserSerializer(user).data,
        },
        status=status.HTTP_201_CREATED
    )


# -----------------------------
# LOGIN API
# -----------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    JWT login with account lock after 5 failed attempts
    """
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    identifier = serializer.validated_data['username']
    password = serializer.validated_data['password']

    user = User.objects.filter(username__iexact=identifier).first() or \
        User.objects.filter(email__iexact=identifier).first()

    if user is None:
        record_failed_login(identifier, request=request)
        raise AuthenticationFailed("Invalid credentials")

    if user.is_locked:
        log_security_event('account_locked', risk_level='high', user=user, request=request,
                           details={'reason': 'login_attempt_on_locked_account'})
        raise AuthenticationFailed("Account locked due to multiple failed attempts")

    user_auth = authenticate(request, username=identifier, password=password)
    if user_auth is None:
        record_failed_login(identifier, request=request, user=user)
        if user.register_failed_login():
            log_security_event('account_locked', risk_level='high', user=user, request=request,
                               details={'failed_attempts': user.failed_attempts})
        raise AuthenticationFailed("Invalid credentials")

    user_auth.reset_failed_logins()
    clear_failed_logins(identifier)
    log_security_event('login_success', user=user_auth, request=request)

    return Response({
        "message": "Login successful",
        "tokens": get_tokens_for_user(user_auth),
        "user": UserSerializer(user_auth).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)

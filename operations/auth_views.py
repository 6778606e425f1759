"""
Login and password change for hospitals, doctors and ambulance crews.

Each role lives in its own table and logs in with its own id.  A
successful login returns a bearer token whose claims
:class:`operations.authentication.PrincipalJWTAuthentication` turns back
into a principal on later requests.
"""
from __future__ import annotations

import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from operations.authentication import Principal, issue_token
from operations.models import EMT, Ambulance, Doctor, Driver, Hospital
from operations.serializers.auth import ChangePasswordSerializer, LoginSerializer

logger = logging.getLogger(__name__)

ACCOUNT_MODELS = {
    'hospital': Hospital,
    'doctor': Doctor,
    'ambulance': Ambulance,
    'emt': EMT,
    'driver': Driver,
}


def _principal_for(role: str, account) -> Principal:
    if role == 'hospital':
        return Principal(role=role, ref=account.pk, hospital_id=account.pk)
    if role == 'ambulance':
        return Principal(role=role, ref=account.pk, hospital_id=account.hospital_id, ambulance_id=account.pk)
    if role in ('emt', 'driver'):
        return Principal(role=role, ref=account.pk, hospital_id=account.hospital_id, ambulance_id=account.ambulance_id)
    return Principal(role=role, ref=account.pk, hospital_id=account.hospital_id)


def _find_account(role: str, account_id: str):
    """Return ``(role, account)``; crews may sign in under the ambulance role."""
    account = ACCOUNT_MODELS[role].objects.filter(pk=account_id).first()
    if account is not None or role != 'ambulance':
        return role, account
    for crew_role in ('emt', 'driver'):
        member = ACCOUNT_MODELS[crew_role].objects.filter(pk=account_id, is_active=True).first()
        if member is not None:
            return crew_role, member
    return role, None


# ---------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Accepts fields:
      - role: hospital | doctor | ambulance | emt | driver
      - id: the account's own id (HOSP001, DOC100, AMB001, ...)
      - password
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    role, account = _find_account(vd['role'], vd['id'])
    if account is None or not account.check_password(vd['password']):
        logger.info("login failed for %s %s from %s", vd['role'], vd['id'], request.META.get('REMOTE_ADDR'))
        return Response({'success': False, 'message': 'Invalid credentials'}, status=401)

    type(account).objects.filter(pk=account.pk).update(last_login=timezone.now())
    principal = _principal_for(role, account)
    logger.info("login ok: %s %s", role, account.pk)
    return Response({
        'success': True,
        'token': issue_token(principal),
        'role': role,
        'ref': principal.ref,
        'hospitalId': principal.hospital_id,
        'ambulanceId': principal.ambulance_id,
        'forcePasswordChange': account.force_password_change,
    })

# ScopedRateThrottle reads throttle_scope from the wrapped APIView class
login_view.cls.throttle_scope = 'login'


# ---------------------------------------------------------------------
# Password change
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    account = ACCOUNT_MODELS[request.user.role].objects.get(pk=request.user.ref)
    if not account.check_password(vd['oldPassword']):
        return Response({'success': False, 'message': 'Current password is incorrect'}, status=400)

    account.password = vd['newPassword']
    account.force_password_change = False
    account.save()
    logger.info("password changed: %s %s", request.user.role, request.user.ref)
    return Response({'success': True, 'message': 'Password updated'})

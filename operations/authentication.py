"""
Stateless bearer authentication for the network's staff roles.

Hospitals, doctors and ambulance crews are separate tables rather than
Django users, so the access token carries everything the handlers need:
``role``, ``ref`` (the caller's own id) and, where relevant, the
hospital and ambulance the caller belongs to.  The authentication class
turns those claims into a :class:`Principal` without touching the
database.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.tokens import AccessToken

ROLES = ('hospital', 'doctor', 'ambulance', 'emt', 'driver')
CREW_ROLES = ('ambulance', 'emt', 'driver')


@dataclass(frozen=True)
class Principal:
    role: str
    ref: str
    hospital_id: Optional[str] = None
    ambulance_id: Optional[str] = None

    is_authenticated = True
    is_anonymous = False

    @property
    def pk(self) -> str:
        # used by the throttles as the cache identity
        return f"{self.role}:{self.ref}"

    @property
    def is_crew(self) -> bool:
        return self.role in CREW_ROLES


def issue_token(principal: Principal) -> str:
    token = AccessToken()
    token['sub'] = principal.pk
    token['role'] = principal.role
    token['ref'] = principal.ref
    if principal.hospital_id:
        token['hospital'] = principal.hospital_id
    if principal.ambulance_id:
        token['ambulance'] = principal.ambulance_id
    return str(token)


class PrincipalJWTAuthentication(JWTAuthentication):
    """Resolve a validated access token to a :class:`Principal`."""

    def get_user(self, validated_token):
        role = validated_token.get('role')
        ref = validated_token.get('ref')
        if role not in ROLES or not ref:
            raise InvalidToken('Token carries no recognised role')
        return Principal(
            role=role,
            ref=str(ref),
            hospital_id=validated_token.get('hospital'),
            ambulance_id=validated_token.get('ambulance'),
        )

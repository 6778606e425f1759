"""
Role based permission classes and ownership checks.

The classes gate a view by role; the ``may_*`` helpers answer the
per-record question of whether the caller owns what it is touching.
"""
from rest_framework.permissions import BasePermission

from .authentication import CREW_ROLES


def _role(request):
    user = getattr(request, "user", None)
    if not (user and getattr(user, "is_authenticated", False)):
        return None
    return getattr(user, "role", None)


class IsHospital(BasePermission):
    """Allow access only to hospital accounts."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "hospital"


class IsDoctor(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "doctor"


class IsHospitalOrDoctor(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in {"hospital", "doctor"}


class IsCrew(BasePermission):
    """Ambulance crews: the vehicle account, its EMTs and drivers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in CREW_ROLES


def may_manage_hospital(user, hospital_id) -> bool:
    return getattr(user, "role", None) == "hospital" and user.ref == str(hospital_id)


def may_act_for_doctor(user, doctor) -> bool:
    """A doctor acts for itself; a hospital acts for its own doctors."""
    role = getattr(user, "role", None)
    if role == "doctor":
        return user.ref == doctor.doctor_id
    return role == "hospital" and user.ref == doctor.hospital_id


def may_operate_ambulance(user, ambulance) -> bool:
    role = getattr(user, "role", None)
    if role in CREW_ROLES:
        return user.ambulance_id == ambulance.ambulance_id
    return role == "hospital" and user.ref == ambulance.hospital_id

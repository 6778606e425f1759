import bleach
from django.conf import settings
from rest_framework import serializers

from operations.models import BLOOD_TYPES, Announcement


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class BloodAddSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32)
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES, error_messages={'invalid_choice': 'Invalid blood type'})
    quantity = serializers.IntegerField(min_value=1, max_value=1000)
    expiryDate = serializers.DateField()
    donorInfo = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)

    def validate_notes(self, v):
        return _clean(v)


class BloodUseSerializer(serializers.Serializer):
    unitsUsed = serializers.IntegerField(min_value=1, required=False)
    emergencyId = serializers.CharField(max_length=64, required=False, allow_blank=True)
    patientName = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_patientName(self, v):
        return _clean(v)


class AnnouncementSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32, required=False)
    title = serializers.CharField(max_length=255)
    content = serializers.CharField()
    type = serializers.ChoiceField(choices=[t for t, _ in Announcement.TYPE_CHOICES], required=False)
    priority = serializers.ChoiceField(choices=[p for p, _ in Announcement.PRIORITY_CHOICES], required=False)

    def validate_title(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Title cannot be empty')
        return v

    def validate_content(self, v):
        v = _clean(v)
        limit = getattr(settings, 'ANNOUNCEMENT_MAX_LENGTH', 500)
        if not v:
            raise serializers.ValidationError('Content cannot be empty')
        if len(v) > limit:
            raise serializers.ValidationError(f'Content exceeds {limit} characters')
        return v


def blood_data(b):
    return {
        'bloodBankId': b.blood_bank_id,
        'hospitalId': b.hospital_id,
        'bloodType': b.blood_type,
        'quantity': b.quantity,
        'expiryDate': b.expiry_date,
        'status': b.status,
        'donorInfo': b.donor_info,
        'usedFor': b.used_for or None,
        'usedAt': b.used_at,
        'addedBy': b.added_by,
        'notes': b.notes,
    }


def announcement_data(a):
    return {
        'announcementId': a.announcement_id,
        'hospitalId': a.hospital_id,
        'hospitalName': a.hospital.name,
        'title': a.title,
        'content': a.content,
        'type': a.type,
        'priority': a.priority,
        'createdBy': a.created_by,
        'expiresAt': a.expires_at,
        'isActive': a.is_active,
        'createdAt': a.created_at,
    }

import bleach
from rest_framework import serializers

from operations.models import EMT, Ambulance, EmergencyRequest
from .network import LocationSerializer


class AmbulanceCreateSerializer(serializers.Serializer):
    ambulanceId = serializers.CharField(max_length=32)
    hospitalId = serializers.CharField(max_length=32)
    vehicleNumber = serializers.CharField(max_length=32)
    vehicleType = serializers.ChoiceField(choices=[t for t, _ in Ambulance.VEHICLE_CHOICES], required=False)
    equipment = serializers.ListField(child=serializers.CharField(max_length=64), required=False)


class CrewMemberSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32)
    ambulanceId = serializers.CharField(max_length=32, required=False, allow_blank=True)
    name = serializers.CharField(max_length=255)
    mobile = serializers.RegexField(r'^\+?\d{10,15}$', max_length=20)
    licenseNumber = serializers.CharField(max_length=64)

    def validate_name(self, v):
        return bleach.clean(v.strip(), strip=True)


class EMTCreateSerializer(CrewMemberSerializer):
    emtId = serializers.CharField(max_length=32)
    qualification = serializers.ChoiceField(choices=[q for q, _ in EMT.QUALIFICATION_CHOICES])
    licenseExpiryDate = serializers.DateField(required=False)


class DriverCreateSerializer(CrewMemberSerializer):
    driverId = serializers.CharField(max_length=32)
    licenseType = serializers.CharField(max_length=32, required=False)
    licenseExpiryDate = serializers.DateField()


class AmbulanceLocationSerializer(LocationSerializer):
    status = serializers.ChoiceField(choices=[s for s, _ in Ambulance.STATUS_CHOICES], required=False)


class EtaQuerySerializer(serializers.Serializer):
    destLat = serializers.FloatField(min_value=-90, max_value=90)
    destLng = serializers.FloatField(min_value=-180, max_value=180)


class PatientSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False)
    gender = serializers.CharField(max_length=16, required=False, allow_blank=True)
    contact = serializers.CharField(max_length=32, required=False, allow_blank=True)
    location = LocationSerializer(required=False)


class EmergencyCreateSerializer(serializers.Serializer):
    hospitalId = serializers.CharField(max_length=32)
    patient = PatientSerializer()
    emergencyType = serializers.CharField(max_length=64)
    severity = serializers.ChoiceField(choices=[s for s, _ in EmergencyRequest.SEVERITY_CHOICES], required=False)
    description = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    ambulanceId = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate_description(self, v):
        return bleach.clean((v or '').strip(), strip=True)


class EmergencyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in EmergencyRequest.STATUS_CHOICES])
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)
    ambulanceId = serializers.CharField(max_length=32, required=False, allow_blank=True)
    rejectionReason = serializers.CharField(required=False, allow_blank=True)
    alternateHospitals = serializers.ListField(child=serializers.CharField(max_length=32), required=False)


def ambulance_data(a):
    return {
        'ambulanceId': a.ambulance_id,
        'hospitalId': a.hospital_id,
        'vehicleNumber': a.vehicle_number,
        'vehicleType': a.vehicle_type,
        'status': a.status,
        'location': a.location,
        'lastLocationUpdate': a.last_location_update,
        'currentEmergencyId': a.current_emergency_id or None,
        'equipment': a.equipment,
    }


def crew_data(member):
    data = {
        'hospitalId': member.hospital_id,
        'ambulanceId': member.ambulance_id,
        'name': member.name,
        'mobile': member.mobile,
        'licenseNumber': member.license_number,
        'licenseExpiryDate': member.license_expiry_date,
        'isActive': member.is_active,
    }
    if isinstance(member, EMT):
        data.update(emtId=member.emt_id, qualification=member.qualification)
    else:
        data.update(driverId=member.driver_id, licenseType=member.license_type)
    return data


def emergency_data(e):
    return {
        'emergencyId': e.emergency_id,
        'hospitalId': e.hospital_id,
        'patient': e.patient,
        'emergencyType': e.emergency_type,
        'severity': e.severity,
        'description': e.description,
        'status': e.status,
        'assignedAmbulance': e.assigned_ambulance_id,
        'etaMinutes': e.eta_minutes,
        'timeline': e.timeline,
        'rejectionReason': e.rejection_reason or None,
        'alternateHospitals': e.alternate_hospitals,
        'createdAt': e.created_at,
        'updatedAt': e.updated_at,
    }

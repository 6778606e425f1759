"""
Django admin registrations for the network models.

Passwords are excluded from the forms; accounts get theirs from the
seed data or the creating endpoint and change them through the API.
"""

from django.contrib import admin

from .models import (
    EMT,
    Ambulance,
    Announcement,
    Attendance,
    Bed,
    BloodBank,
    Doctor,
    Driver,
    EmergencyRequest,
    Hospital,
    Leave,
)


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('hospital_id', 'name', 'contact', 'lat', 'lng', 'updated_at')
    search_fields = ('hospital_id', 'name')
    exclude = ('password',)


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('doctor_id', 'name', 'hospital', 'speciality', 'availability', 'shift')
    list_filter = ('hospital', 'availability', 'shift')
    search_fields = ('doctor_id', 'name')
    exclude = ('password',)


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'availability', 'method', 'check_in_verified', 'hours_worked')
    list_filter = ('hospital', 'availability', 'method')
    date_hierarchy = 'date'


@admin.register(Leave)
class LeaveAdmin(admin.ModelAdmin):
    list_display = ('leave_id', 'doctor', 'leave_type', 'start_date', 'end_date', 'status')
    list_filter = ('status', 'leave_type')


@admin.register(Bed)
class BedAdmin(admin.ModelAdmin):
    list_display = ('bed_id', 'hospital', 'bed_type', 'status', 'last_updated')
    list_filter = ('hospital', 'bed_type', 'status')
    search_fields = ('bed_id',)


@admin.register(Ambulance)
class AmbulanceAdmin(admin.ModelAdmin):
    list_display = ('ambulance_id', 'hospital', 'vehicle_number', 'status', 'last_location_update')
    list_filter = ('hospital', 'status')
    exclude = ('password',)


@admin.register(EMT)
class EMTAdmin(admin.ModelAdmin):
    list_display = ('emt_id', 'name', 'hospital', 'ambulance', 'qualification', 'is_active')
    exclude = ('password',)


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    list_display = ('driver_id', 'name', 'hospital', 'ambulance', 'license_expiry_date', 'is_active')
    exclude = ('password',)


@admin.register(EmergencyRequest)
class EmergencyRequestAdmin(admin.ModelAdmin):
    list_display = ('emergency_id', 'hospital', 'emergency_type', 'severity', 'status', 'assigned_ambulance', 'created_at')
    list_filter = ('hospital', 'status', 'severity')


@admin.register(BloodBank)
class BloodBankAdmin(admin.ModelAdmin):
    list_display = ('blood_bank_id', 'hospital', 'blood_type', 'quantity', 'expiry_date', 'status')
    list_filter = ('hospital', 'blood_type', 'status')


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ('announcement_id', 'hospital', 'title', 'priority', 'expires_at', 'is_active')
    list_filter = ('hospital', 'type', 'priority', 'is_active')

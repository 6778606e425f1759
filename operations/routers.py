"""
URL mappings for the RapidCare network API.

Paths mirror the ones the dashboards and the ambulance app already call,
without trailing slashes.  Fixed segments (``attendance``, ``emt``,
``alerts``...) are listed before the catch-all id routes that share
their prefix.
"""
from django.urls import include, path

from .auth_views import change_password_view, login_view
from .views import ambulances, announcements, beds, blood_bank, doctors, emergency, health, hospitals, reset

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/login', login_view),
    path('api/auth/change-password', change_password_view),

    # Hospitals
    path('api/hospitals', hospitals.list_hospitals),
    path('api/hospital/<str:hospital_id>', hospitals.hospital_detail),

    # Beds
    path('api/beds', beds.create_bed),
    path('api/beds/<str:bed_id>/status', beds.update_bed_status),
    path('api/beds/<str:bed_id>/discharge', beds.discharge_bed),
    path('api/beds/<str:bed_id>/cleaned', beds.mark_bed_cleaned),
    path('api/beds/<str:hospital_id>', beds.list_beds),

    # Doctors, attendance and leave
    path('api/doctors', doctors.create_doctor),
    path('api/doctors/attendance', doctors.mark_attendance),
    path('api/doctors/attendance/manual-update', doctors.manual_update_attendance),
    path('api/doctors/attendance/gps-check-in', doctors.gps_check_in),
    path('api/doctors/attendance/gps-check-out', doctors.gps_check_out),
    path('api/doctors/attendance/<str:doctor_id>', doctors.attendance_history),
    path('api/doctors/doctor/<str:doctor_id>', doctors.doctor_detail),
    path('api/doctors/<str:doctor_id>/leave', doctors.request_leave),
    path('api/doctors/<str:doctor_id>/leaves', doctors.list_leaves),
    path('api/doctors/<str:doctor_id>/leaves/<str:leave_id>/approve', doctors.decide_leave),
    path('api/doctors/<str:hospital_id>', doctors.list_doctors),

    # Ambulances and crews
    path('api/ambulances', ambulances.create_ambulance),
    path('api/ambulances/emt', ambulances.register_emt),
    path('api/ambulances/driver', ambulances.register_driver),
    path('api/ambulances/emts/<str:hospital_id>', ambulances.list_emts),
    path('api/ambulances/drivers/<str:hospital_id>', ambulances.list_drivers),
    path('api/ambulances/<str:ambulance_id>/location', ambulances.update_location),
    path('api/ambulances/<str:ambulance_id>/eta', ambulances.ambulance_eta),
    path('api/ambulances/<str:hospital_id>', ambulances.list_ambulances),

    # Emergencies
    path('api/emergency', emergency.create_emergency),
    path('api/emergency/hospital/<str:hospital_id>', emergency.hospital_emergencies),
    path('api/emergency/<str:emergency_id>/status', emergency.update_emergency_status),

    # Blood bank
    path('api/blood-bank', blood_bank.add_blood),
    path('api/blood-bank/alerts/<str:hospital_id>', blood_bank.blood_alerts),
    path('api/blood-bank/expiry/<str:hospital_id>', blood_bank.blood_expiring),
    path('api/blood-bank/history/<str:hospital_id>', blood_bank.blood_history),
    path('api/blood-bank/<str:blood_id>/use', blood_bank.use_blood),
    path('api/blood-bank/<str:hospital_id>', blood_bank.blood_summary),

    # Announcements
    path('api/announcements', announcements.post_announcement),
    path('api/announcements/<str:key>', announcements.announcement_resource),

    # Demo data
    path('api/reset', reset.reset_database),
]

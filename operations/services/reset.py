"""
Demo data for the three-hospital network.

``reset_network`` wipes every hospital (and, by cascade, everything that
hangs off one) and recreates the fixed demo set: three Raipur hospitals,
four doctors, two ambulances with their crews, thirteen beds per hospital
and today's attendance for the two morning doctors.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from operations.models import EMT, Ambulance, Attendance, Bed, Doctor, Driver, Hospital
from operations.services.passwords import hash_password

logger = logging.getLogger(__name__)

HOSPITALS = [
    {
        'hospital_id': 'HOSP001',
        'name': 'RapidCare General Hospital',
        'contact': '9999999999',
        'address': {'state': 'Chhattisgarh', 'district': 'Raipur', 'city': 'Raipur', 'street': 'MG Road'},
        'lat': 21.2514, 'lng': 81.6296,
        'services': ['Emergency', 'OPD', 'Surgery'],
        'facilities': ['Pharmacy', 'ICU', 'Radiology', 'Laboratory'],
        'insurance': ['ABC Health', 'XYZ Insure', 'MediCare'],
        'treatment': ['Cardiology', 'Orthopedics', 'Neurology', 'Pediatrics'],
        'surgery': ['Appendectomy', 'Gallbladder', 'Hernia'],
        'therapy': ['Physiotherapy', 'Occupational Therapy'],
    },
    {
        'hospital_id': 'HOSP002',
        'name': 'City Multispeciality Hospital',
        'contact': '8888888888',
        'address': {'state': 'Chhattisgarh', 'district': 'Raipur', 'city': 'Naya Raipur', 'street': 'Sector 21'},
        'lat': 21.1610, 'lng': 81.7870,
        'services': ['Emergency', 'Diagnostics', 'Surgery'],
        'facilities': ['Radiology', 'ICU', 'Laboratory', 'Pharmacy'],
        'insurance': ['ABC Health', 'MediCare'],
        'treatment': ['Neurology', 'Cardiology', 'Oncology'],
        'surgery': ['Bypass', 'Brain Surgery', 'Cancer Surgery'],
        'therapy': ['Occupational', 'Speech Therapy'],
    },
    {
        'hospital_id': 'HOSP003',
        'name': 'Raipur Medical Center',
        'contact': '7777777777',
        'address': {'state': 'Chhattisgarh', 'district': 'Raipur', 'city': 'Raipur', 'street': 'Civil Lines'},
        'lat': 21.2444, 'lng': 81.6400,
        'services': ['Emergency', 'OPD', 'Maternity'],
        'facilities': ['ICU', 'NICU', 'Laboratory', 'Pharmacy'],
        'insurance': ['XYZ Insure', 'MediCare', 'Health Plus'],
        'treatment': ['Gynecology', 'Pediatrics', 'General Medicine'],
        'surgery': ['C-Section', 'Hysterectomy', 'Appendectomy'],
        'therapy': ['Physiotherapy', 'Occupational Therapy'],
    },
]

DOCTORS = [
    ('HOSP001', 'DOC100', 'Dr. A Sharma', 'MBBS, MD', 'Cardiology', '10 yrs', 'Available', 'Morning'),
    ('HOSP001', 'DOC101', 'Dr. B Verma', 'MBBS, MS', 'Orthopedics', '7 yrs', 'Available', 'Afternoon'),
    ('HOSP002', 'DOC102', 'Dr. C Patel', 'MBBS, MD', 'Neurology', '12 yrs', 'Not Available', 'Evening'),
    ('HOSP003', 'DOC103', 'Dr. D Singh', 'MBBS, MS', 'Gynecology', '8 yrs', 'Available', 'Morning'),
]

# (hospital, ambulance, vehicle, status, (emt id, name, mobile), (driver id, name, mobile))
AMBULANCES = [
    ('HOSP001', 'AMB001', 'CG04-1234', 'On Duty', ('EMT01', 'Ravi Kumar', '9000000001'), ('PIL01', 'Vikram Singh', '9000000002')),
    ('HOSP002', 'AMB002', 'CG04-5678', 'Offline', ('EMT02', 'Suresh Yadav', '9000000003'), ('PIL02', 'Rajesh Kumar', '9000000004')),
]

ICU_BEDS = 3
WARD_BEDS = 10


def _beds_for(hospital_id: str):
    now = timezone.now()
    for i in range(1, ICU_BEDS + 1):
        n = f"{i:02d}"
        yield Bed(
            bed_id=f"{hospital_id}-ICU-B{n}", hospital_id=hospital_id, bed_number=n,
            ward_number='ICU', bed_type='ICU',
            status=Bed.OCCUPIED if i % 2 == 0 else Bed.VACANT, last_updated=now,
        )
    for i in range(1, WARD_BEDS + 1):
        n = f"{i:02d}"
        yield Bed(
            bed_id=f"{hospital_id}-W1-B{n}", hospital_id=hospital_id, bed_number=n,
            ward_number='1', bed_type='General',
            status=Bed.OCCUPIED if i % 3 == 0 else Bed.VACANT, last_updated=now,
        )


@transaction.atomic
def reset_network(password: str | None = None) -> dict:
    """Replace all network data with the demo set; returns counts per entity."""
    hashed = hash_password(password or settings.DEFAULT_STAFF_PASSWORD)
    deleted, _ = Hospital.objects.all().delete()
    logger.info("reset: removed %d rows", deleted)

    hospitals = [Hospital(password=hashed, force_password_change=True, **h) for h in HOSPITALS]
    Hospital.objects.bulk_create(hospitals)

    doctors = [
        Doctor(
            hospital_id=h, doctor_id=d, name=name, qualification=q, speciality=sp,
            experience=exp, availability=avail, shift=shift,
            password=hashed, force_password_change=True,
        )
        for h, d, name, q, sp, exp, avail, shift in DOCTORS
    ]
    Doctor.objects.bulk_create(doctors)

    ambulances, emts, drivers = [], [], []
    licence_expiry = date.today() + timedelta(days=365 * 2)
    for h, amb_id, vehicle, status, emt, driver in AMBULANCES:
        ambulances.append(Ambulance(
            hospital_id=h, ambulance_id=amb_id, vehicle_number=vehicle, status=status,
            password=hashed, force_password_change=True,
        ))
        emts.append(EMT(
            emt_id=emt[0], name=emt[1], mobile=emt[2], hospital_id=h, ambulance_id=amb_id,
            qualification='Basic EMT', license_number=f"LIC-{emt[0]}",
            password=hashed, force_password_change=True,
        ))
        drivers.append(Driver(
            driver_id=driver[0], name=driver[1], mobile=driver[2], hospital_id=h, ambulance_id=amb_id,
            license_number=f"LIC-{driver[0]}", license_expiry_date=licence_expiry,
            password=hashed, force_password_change=True,
        ))
    Ambulance.objects.bulk_create(ambulances)
    EMT.objects.bulk_create(emts)
    Driver.objects.bulk_create(drivers)

    beds = [bed for h in HOSPITALS for bed in _beds_for(h['hospital_id'])]
    Bed.objects.bulk_create(beds)

    today = timezone.localdate()
    attendance = [
        Attendance(doctor_id='DOC100', hospital_id='HOSP001', date=today, availability='Present',
                   shift='Morning', marked_by='Reception'),
        Attendance(doctor_id='DOC101', hospital_id='HOSP001', date=today, availability='Present',
                   shift='Afternoon', marked_by='Reception'),
    ]
    Attendance.objects.bulk_create(attendance)

    counts = {
        'hospitals': len(hospitals),
        'doctors': len(doctors),
        'ambulances': len(ambulances),
        'emts': len(emts),
        'drivers': len(drivers),
        'beds': len(beds),
        'attendance': len(attendance),
    }
    logger.info("reset: seeded %s", counts)
    return counts

"""
Database models for the RapidCare network.

Every entity is keyed by the identifier the hospitals themselves assign
(``HOSP001``, ``DOC100``, ``AMB001``, ...) rather than a generated key,
so the primary keys here are short strings.  Field names follow the
JSON the dashboards exchange where practical.
"""
from __future__ import annotations

from django.db import models

from .services.passwords import hash_password, verify_password

SHIFT_CHOICES = [
    ('Morning', 'Morning'),
    ('Afternoon', 'Afternoon'),
    ('Evening', 'Evening'),
    ('Night', 'Night'),
]

BLOOD_TYPES = ['O+', 'O-', 'A+', 'A-', 'B+', 'B-', 'AB+', 'AB-']


class Credentialed(models.Model):
    """Abstract base for entities that log in with their own id.

    Passwords are hashed on save; an already hashed value is stored as is.
    """
    password = models.CharField(max_length=128, blank=True)
    force_password_change = models.BooleanField(default=True)
    last_login = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if self.password:
            self.password = hash_password(self.password)
        super().save(*args, **kwargs)

    def check_password(self, raw: str) -> bool:
        return verify_password(raw, self.password)


class Hospital(Credentialed):
    hospital_id = models.CharField(max_length=32, primary_key=True)
    name = models.CharField(max_length=255)
    contact = models.CharField(max_length=32, blank=True)
    address = models.JSONField(default=dict, blank=True)
    services = models.JSONField(default=list, blank=True)
    facilities = models.JSONField(default=list, blank=True)
    insurance = models.JSONField(default=list, blank=True)
    treatment = models.JSONField(default=list, blank=True)
    surgery = models.JSONField(default=list, blank=True)
    therapy = models.JSONField(default=list, blank=True)
    lat = models.FloatField(null=True, blank=True)
    lng = models.FloatField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None

    def __str__(self) -> str:
        return f"{self.name} ({self.hospital_id})"


class Doctor(Credentialed):
    AVAILABLE = 'Available'
    NOT_AVAILABLE = 'Not Available'
    AVAILABILITY_CHOICES = [(AVAILABLE, AVAILABLE), (NOT_AVAILABLE, NOT_AVAILABLE)]

    doctor_id = models.CharField(max_length=32, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='doctors')
    name = models.CharField(max_length=255)
    qualification = models.CharField(max_length=255, blank=True)
    speciality = models.CharField(max_length=255, blank=True)
    experience = models.CharField(max_length=64, blank=True)
    photo_url = models.CharField(max_length=512, blank=True)
    availability = models.CharField(
        max_length=16, choices=AVAILABILITY_CHOICES, default=NOT_AVAILABLE, db_index=True
    )
    shift = models.CharField(max_length=16, choices=SHIFT_CHOICES, default='Morning')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.doctor_id})"


class Attendance(models.Model):
    """One row per doctor per day, upserted by manual, QR or GPS marking."""
    AVAILABILITY_CHOICES = [('Present', 'Present'), ('Absent', 'Absent'), ('Leave', 'Leave')]
    MARKED_BY_CHOICES = [('Doctor', 'Doctor'), ('Reception', 'Reception')]
    METHOD_CHOICES = [('Manual', 'Manual'), ('Manual Edit', 'Manual Edit'), ('QR', 'QR'), ('GPS', 'GPS')]

    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='attendance')
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='attendance')
    date = models.DateField()
    availability = models.CharField(max_length=16, choices=AVAILABILITY_CHOICES)
    shift = models.CharField(max_length=16, choices=SHIFT_CHOICES, default='Morning')
    marked_by = models.CharField(max_length=16, choices=MARKED_BY_CHOICES)
    method = models.CharField(max_length=16, choices=METHOD_CHOICES, default='Manual')

    check_in_time = models.DateTimeField(null=True, blank=True)
    check_in_lat = models.FloatField(null=True, blank=True)
    check_in_lng = models.FloatField(null=True, blank=True)
    check_in_verified = models.BooleanField(default=False)
    check_in_distance = models.PositiveIntegerField(null=True, blank=True)

    check_out_time = models.DateTimeField(null=True, blank=True)
    check_out_lat = models.FloatField(null=True, blank=True)
    check_out_lng = models.FloatField(null=True, blank=True)
    check_out_verified = models.BooleanField(default=False)
    check_out_distance = models.PositiveIntegerField(null=True, blank=True)

    hours_worked = models.FloatField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('doctor', 'date')]
        indexes = [models.Index(fields=['hospital', 'date'])]

    def __str__(self) -> str:
        return f"{self.doctor_id} {self.date:%F} {self.availability}"


class Leave(models.Model):
    PENDING = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'
    STATUS_CHOICES = [(PENDING, PENDING), (APPROVED, APPROVED), (REJECTED, REJECTED)]
    TYPE_CHOICES = [('Sick', 'Sick'), ('Casual', 'Casual'), ('Emergency', 'Emergency'), ('Vacation', 'Vacation')]

    leave_id = models.CharField(max_length=64, primary_key=True)
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='leaves')
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='leaves')
    doctor_name = models.CharField(max_length=255, blank=True)
    start_date = models.DateField()
    end_date = models.DateField()
    leave_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    reason = models.TextField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=PENDING, db_index=True)
    approved_by = models.CharField(max_length=32, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.leave_id} ({self.status})"


class Bed(models.Model):
    VACANT = 'Vacant'
    OCCUPIED = 'Occupied'
    RESERVED = 'Reserved'
    CLEANING = 'Cleaning'
    STATUS_CHOICES = [(VACANT, VACANT), (OCCUPIED, OCCUPIED), (RESERVED, RESERVED), (CLEANING, CLEANING)]
    TYPE_CHOICES = [('ICU', 'ICU'), ('General', 'General'), ('Other', 'Other')]

    bed_id = models.CharField(max_length=64, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='beds')
    bed_number = models.CharField(max_length=16)
    ward_number = models.CharField(max_length=32, blank=True)
    bed_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='General')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=VACANT, db_index=True)
    occupied_by = models.CharField(max_length=255, blank=True)
    occupied_at = models.DateTimeField(null=True, blank=True)
    last_updated = models.DateTimeField(null=True, blank=True)

    discharged_at = models.DateTimeField(null=True, blank=True)
    discharged_by = models.CharField(max_length=32, blank=True)
    discharge_reason = models.CharField(max_length=255, blank=True)
    discharge_notes = models.TextField(blank=True)

    cleaning_started_at = models.DateTimeField(null=True, blank=True)
    cleaning_started_by = models.CharField(max_length=32, blank=True)
    cleaning_completed_at = models.DateTimeField(null=True, blank=True)
    cleaning_completed_by = models.CharField(max_length=32, blank=True)
    cleaning_expected_minutes = models.PositiveIntegerField(default=30)

    def __str__(self) -> str:
        return f"{self.bed_id} ({self.status})"


class Ambulance(Credentialed):
    STATUS_CHOICES = [
        ('Available', 'Available'),
        ('On Duty', 'On Duty'),
        ('En Route', 'En Route'),
        ('At Scene', 'At Scene'),
        ('Transporting', 'Transporting'),
        ('Offline', 'Offline'),
    ]
    VEHICLE_CHOICES = [('BLS', 'BLS'), ('ALS', 'ALS'), ('ICU', 'ICU')]

    ambulance_id = models.CharField(max_length=32, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='ambulances')
    vehicle_number = models.CharField(max_length=32)
    vehicle_type = models.CharField(max_length=8, choices=VEHICLE_CHOICES, default='BLS')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='Offline', db_index=True)
    lat = models.FloatField(null=True, blank=True)
    lng = models.FloatField(null=True, blank=True)
    last_location_update = models.DateTimeField(null=True, blank=True)
    current_emergency_id = models.CharField(max_length=64, blank=True)
    equipment = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def location(self) -> dict | None:
        if self.lat is None or self.lng is None:
            return None
        return {'lat': self.lat, 'lng': self.lng}

    def __str__(self) -> str:
        return f"{self.ambulance_id} ({self.vehicle_number})"


class EMT(Credentialed):
    QUALIFICATION_CHOICES = [
        ('Basic EMT', 'Basic EMT'),
        ('Advanced EMT', 'Advanced EMT'),
        ('Paramedic', 'Paramedic'),
    ]

    emt_id = models.CharField(max_length=32, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='emts')
    ambulance = models.ForeignKey(
        Ambulance, null=True, blank=True, on_delete=models.SET_NULL, related_name='emts'
    )
    name = models.CharField(max_length=255)
    qualification = models.CharField(max_length=32, choices=QUALIFICATION_CHOICES)
    mobile = models.CharField(max_length=20)
    license_number = models.CharField(max_length=64)
    license_expiry_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self) -> str:
        return f"EMT {self.name} ({self.emt_id})"


class Driver(Credentialed):
    driver_id = models.CharField(max_length=32, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='drivers')
    ambulance = models.ForeignKey(
        Ambulance, null=True, blank=True, on_delete=models.SET_NULL, related_name='drivers'
    )
    name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=20)
    license_number = models.CharField(max_length=64)
    license_type = models.CharField(max_length=32, default='Commercial')
    license_expiry_date = models.DateField()
    is_active = models.BooleanField(default=True)

    def __str__(self) -> str:
        return f"Driver {self.name} ({self.driver_id})"


class EmergencyRequest(models.Model):
    STATUS_CHOICES = [
        ('Pending', 'Pending'),
        ('Dispatched', 'Dispatched'),
        ('En Route', 'En Route'),
        ('At Scene', 'At Scene'),
        ('Transporting', 'Transporting'),
        ('Arrived', 'Arrived'),
        ('Completed', 'Completed'),
        ('Rejected', 'Rejected'),
    ]
    SEVERITY_CHOICES = [('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')]

    emergency_id = models.CharField(max_length=64, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='emergencies')
    patient = models.JSONField(default=dict)
    emergency_type = models.CharField(max_length=64)
    severity = models.CharField(max_length=16, choices=SEVERITY_CHOICES, default='Medium')
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='Pending', db_index=True)
    assigned_ambulance = models.ForeignKey(
        Ambulance, null=True, blank=True, on_delete=models.SET_NULL, related_name='emergencies'
    )
    eta_minutes = models.PositiveIntegerField(null=True, blank=True)
    timeline = models.JSONField(default=list, blank=True)
    rejection_reason = models.TextField(blank=True)
    alternate_hospitals = models.JSONField(default=list, blank=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.emergency_id} ({self.status})"


class BloodBank(models.Model):
    """A batch of blood units of one type."""
    STATUS_CHOICES = [('Available', 'Available'), ('Used', 'Used'), ('Expired', 'Expired')]

    blood_bank_id = models.CharField(max_length=96, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='blood_units')
    blood_type = models.CharField(max_length=3, choices=[(t, t) for t in BLOOD_TYPES])
    quantity = models.PositiveIntegerField(default=0)
    expiry_date = models.DateField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default='Available')
    donor_info = models.JSONField(default=dict, blank=True)
    used_for = models.JSONField(default=dict, blank=True)
    used_at = models.DateTimeField(null=True, blank=True)
    added_by = models.CharField(max_length=32, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['hospital', 'blood_type', 'status'])]

    def __str__(self) -> str:
        return f"{self.blood_type} x{self.quantity} ({self.blood_bank_id})"


class Announcement(models.Model):
    TYPE_CHOICES = [
        ('Capacity', 'Capacity'),
        ('Blood', 'Blood'),
        ('Doctor', 'Doctor'),
        ('Service', 'Service'),
        ('Emergency', 'Emergency'),
        ('General', 'General'),
    ]
    PRIORITY_CHOICES = [('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Critical', 'Critical')]

    announcement_id = models.CharField(max_length=64, primary_key=True)
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='announcements')
    title = models.CharField(max_length=255)
    content = models.TextField()
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default='General')
    priority = models.CharField(max_length=16, choices=PRIORITY_CHOICES, default='Medium')
    created_by = models.CharField(max_length=32)
    expires_at = models.DateTimeField(db_index=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.title[:30]

"""Operations application for the RapidCare network backend.

This package contains the models, REST handlers and the real-time
broadcast layer that keeps hospital dashboards, ambulance crews and the
public portal in sync.
"""

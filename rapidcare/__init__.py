"""Django project configuration for the RapidCare network backend."""

"""Route modules for the shorts feed API."""

"""WSGI entrypoint for Passenger and other WSGI hosts."""

from directortax.backend.app import create_app

# Passenger expects a module-level variable named ``application``.
application = create_app()

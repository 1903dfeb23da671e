"""
Shared services: payment gateway and email provider clients.

Import the clients from their subpackages (shared.services.payment,
shared.services.email) so Django models are never imported from here.
"""

"""Configuration Manager administration clients for CMPD.

This package provides the AdminClient protocol every client implements,
the domain types the clients exchange, and a registry for client lookup
by name (settings: site.client).

Available Clients:
    adminservice : AdminServiceClient
        REST client for the SMS provider's AdminService endpoint.

Wrappers:
    WhatIfClient
        Performs reads through another client and only logs writes.

Example:
    Get a client by name:

        from cmpostdeploy.admin import get_client

        client = get_client(settings.site.client, settings)
        client.connect()

"""

# base first: adminservice registers itself with the registry on import
from .base import (
    AdminClient,
    DeploymentTarget,
    DeployPurpose,
    SupersededApplication,
    UserExperience,
    available_clients,
    get_client,
    register_client,
)
from . import adminservice  # noqa: F401,E402
from .whatif import WhatIfClient

__all__ = [
    "AdminClient",
    "DeploymentTarget",
    "DeployPurpose",
    "SupersededApplication",
    "UserExperience",
    "WhatIfClient",
    "available_clients",
    "get_client",
    "register_client",
]

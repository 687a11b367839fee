"""
MS Graph client setup.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.errors import AuthError

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]


def create_graph_client(tenant_id: str, client_id: str, client_secret: str) -> GraphServiceClient:
    """
    Create an MS Graph client using client-credential auth.

    Raises:
        AuthError: if any credential is missing. No network call is made.
    """
    missing = [
        name
        for name, value in (
            ("MS_TENANT_ID", tenant_id),
            ("MS_CLIENT_ID", client_id),
            ("MS_CLIENT_SECRET", client_secret),
        )
        if not value
    ]
    if missing:
        raise AuthError(f"Missing Graph credentials: {', '.join(missing)}")

    credential = ClientSecretCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
    )
    return GraphServiceClient(credentials=credential, scopes=GRAPH_SCOPES)

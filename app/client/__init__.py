from app.client.api_client import BoardApiClient
from app.client.actions import BoardActions

__all__ = ["BoardApiClient", "BoardActions"]

from xrplbridge_client.client import BridgeApiClient
from xrplbridge_client.exceptions import ApiError

"""商城 HTTP 客户端"""

from storefront.client.api_client import StorefrontClient
from storefront.client.session import ClientSession

__all__ = ["StorefrontClient", "ClientSession"]

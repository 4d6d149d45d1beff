"""PayMongo service - Payment links for redirect checkout"""

import logging
from typing import Optional

import httpx

from ... import config

logger = logging.getLogger(__name__)

PAYMENT_SOURCE = "well-visit-smart"


class PayMongoError(Exception):
    """Raised when the PayMongo API rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None, not_configured: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.not_configured = not_configured


def to_centavos(amount: float) -> int:
    """PayMongo expects integer centavos"""
    return int(round(float(amount) * 100))


class PayMongoService:
    """Service for PayMongo API operations"""

    def __init__(self, secret_key: Optional[str] = None, api_base: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else config.PAYMONGO_SECRET_KEY
        self.api_base = (api_base or config.PAYMONGO_API_BASE).rstrip("/")

        if not self.secret_key:
            logger.warning("PAYMONGO_SECRET_KEY not set; online payments will fail until configured")

    def is_available(self) -> bool:
        """Check if PayMongo credentials are configured"""
        return bool(self.secret_key)

    def build_link_payload(
        self,
        amount: float,
        description: str,
        reference: Optional[str] = None,
        email: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        redirect_query = f"reference={reference}" if reference else ""
        link_metadata = {"source": PAYMENT_SOURCE}
        if reference:
            link_metadata["reference"] = reference
        if email:
            link_metadata["email"] = email
        link_metadata.update(metadata or {})

        return {
            "data": {
                "attributes": {
                    "amount": to_centavos(amount),
                    "description": description,
                    "remarks": reference or description,
                    "redirect": {
                        "success": f"{config.FRONTEND_URL}/payment-success?{redirect_query}",
                        "failed": f"{config.FRONTEND_URL}/payment-failed?{redirect_query}",
                    },
                    "metadata": link_metadata,
                }
            }
        }

    async def create_payment_link(
        self,
        amount: float,
        description: str,
        reference: Optional[str] = None,
        email: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        """
        Create a PayMongo payment link.

        Returns:
            {"id": link id, "checkout_url": hosted checkout URL}
        """
        if not self.secret_key:
            raise PayMongoError("PayMongo is not configured", not_configured=True)

        payload = self.build_link_payload(amount, description, reference, email, metadata)

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    f"{self.api_base}/links",
                    json=payload,
                    auth=(self.secret_key, ""),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ PayMongo request failed: {e}")
            raise PayMongoError(f"Could not reach PayMongo: {e}") from e

        if response.status_code >= 400:
            try:
                errors = response.json().get("errors")
            except ValueError:
                errors = response.text
            logger.error(f"❌ PayMongo error {response.status_code}: {errors}")
            raise PayMongoError(f"PayMongo rejected the payment link: {errors}", response.status_code)

        data = response.json().get("data") or {}
        checkout_url = (data.get("attributes") or {}).get("checkout_url")
        if not checkout_url:
            logger.error(f"❌ PayMongo response missing checkout_url: {data}")
            raise PayMongoError("Missing checkout_url from PayMongo response")

        logger.info(f"✅ PayMongo link {data.get('id')} created for {to_centavos(amount)} centavos")
        return {"id": data.get("id"), "checkout_url": checkout_url}

import json
import logging
from typing import Any, Dict

from pywebpush import WebPushException, webpush
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

# Push services answer 404/410 once a subscription has expired or been revoked
TERMINAL_STATUS_CODES = (404, 410)


class PushDeliveryError(Exception):
    pass


class SubscriptionGone(PushDeliveryError):
    """The endpoint will never accept messages again"""


class PushSender:
    def __init__(self, vapid_private_key: str, vapid_email: str, ttl: int = 86400):
        self._vapid_private_key = vapid_private_key
        if vapid_email and not vapid_email.startswith("mailto:"):
            vapid_email = f"mailto:{vapid_email}"
        self._vapid_email = vapid_email
        self._ttl = ttl

    def _send(self, subscription: Dict[str, Any], data: str) -> None:
        webpush(
            subscription_info=subscription,
            data=data,
            vapid_private_key=self._vapid_private_key,
            # webpush() fills in aud/exp on the dict it receives
            vapid_claims={"sub": self._vapid_email},
            ttl=self._ttl,
        )

    async def send(self, subscription: Dict[str, Any], payload: Dict[str, Any]) -> None:
        """Deliver ``payload`` as JSON to one subscription.

        Raises SubscriptionGone for terminal failures and PushDeliveryError
        for anything else the push service rejects.
        """
        data = json.dumps(payload, ensure_ascii=False)
        try:
            await run_in_threadpool(self._send, subscription, data)
        except WebPushException as ex:
            status_code = ex.response.status_code if ex.response is not None else None
            if status_code in TERMINAL_STATUS_CODES:
                raise SubscriptionGone(f"Subscription gone ({status_code})") from ex
            raise PushDeliveryError(f"Push rejected ({status_code}): {ex}") from ex

"""Payload signatures: a signature over an arbitrary 32-byte hash.

There is nothing to broadcast. With local signing the signature is sent
along with the create request; with a server signer the service fills it
in later, and the operation is finished once SIGNED.
"""

import logging
from typing import Any, Optional

from custodia.operations.base import Operation
from custodia.pagination import PageEnumerator
from custodia.status import OperationKind

logger = logging.getLogger(__name__)


class PayloadSignature(Operation):
    kind = OperationKind.PAYLOAD_SIGNATURE
    label = "Payload signature"
    id_field = "payload_signature_id"

    @classmethod
    def create(
        cls,
        api: Any,
        wallet_id: str,
        address_id: str,
        unsigned_payload: str,
        signature: Optional[str] = None,
    ) -> "PayloadSignature":
        model = api.create_payload_signature(wallet_id, address_id, unsigned_payload, signature=signature)
        payload_signature = cls(api, model)
        logger.info(f"Created {payload_signature}")
        return payload_signature

    @property
    def unsigned_payload(self) -> Optional[str]:
        return self._model.get("unsigned_payload")

    @property
    def signature(self) -> Optional[str]:
        return self._model.get("signature")

    def _fetch(self) -> dict:
        return self._api.get_payload_signature(self.wallet_id, self.address_id, self.id)

    def _describe(self) -> dict:
        details = super()._describe()
        details.update(unsigned_payload=self.unsigned_payload, signature=self.signature)
        return details

    @classmethod
    def list(cls, api: Any, wallet_id: str, address_id: str) -> PageEnumerator:
        return cls._enumerate(api, lambda page: api.list_payload_signatures(wallet_id, address_id, page=page))

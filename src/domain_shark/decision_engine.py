"""
Decision Engine for premium status classification.

The premium API describes each domain with a free-text, space-separated set
of status tokens (for example ``"undelegated inactive"`` or
``"active parked"``). This module reduces that vocabulary to one
PremiumStatus using a fixed priority order, first match wins:

1. ``marketed`` or ``forsale`` token, or the phrase ``for sale`` -> for_sale
2. ``priced`` -> premium
3. ``parked`` -> parked
4. ``active`` -> taken
5. ``inactive`` -> available
6. anything else -> unknown

Matching is per token, so ``inactive`` never satisfies the ``active`` rule.
"""

from typing import Any, Optional

from .enums import PremiumStatus


class DecisionEngine:
    """Maps premium API status documents to PremiumStatus values."""

    FOR_SALE_TOKENS = frozenset({"marketed", "forsale"})
    FOR_SALE_PHRASE = "for sale"

    # Evaluated in order after the for-sale rule
    TOKEN_RULES: tuple[tuple[str, PremiumStatus], ...] = (
        ("priced", PremiumStatus.PREMIUM),
        ("parked", PremiumStatus.PARKED),
        ("active", PremiumStatus.TAKEN),
        ("inactive", PremiumStatus.AVAILABLE),
    )

    def classify_tokens(self, status_text: str) -> PremiumStatus:
        """
        Classify a status token string.

        Args:
            status_text: Space-separated status tokens; may be empty

        Returns:
            The PremiumStatus chosen by the priority rules
        """
        lowered = status_text.lower()
        tokens = set(lowered.split())

        if tokens & self.FOR_SALE_TOKENS or self.FOR_SALE_PHRASE in lowered:
            return PremiumStatus.FOR_SALE

        for token, status in self.TOKEN_RULES:
            if token in tokens:
                return status

        return PremiumStatus.UNKNOWN

    def select_entry(self, data: Any, domain: str) -> Optional[dict]:
        """
        Pick the status record for the requested domain.

        Prefers the record whose ``domain`` matches case-insensitively and
        falls back to the first record. Returns None when the document has
        no usable ``status`` list.
        """
        if not isinstance(data, dict):
            return None

        records = data.get("status")
        if not isinstance(records, list) or not records:
            return None

        wanted = domain.lower()
        for record in records:
            if not isinstance(record, dict):
                continue
            name = record.get("domain")
            if isinstance(name, str) and name.lower() == wanted:
                return record

        first = records[0]
        return first if isinstance(first, dict) else None

    def classify_response(self, data: Any, domain: str) -> PremiumStatus:
        """
        Classify a full premium API document for one domain.

        A record's ``status`` falls back to its ``summary`` when empty.
        """
        record = self.select_entry(data, domain)
        if record is None:
            return PremiumStatus.UNKNOWN

        status_text = record.get("status") or record.get("summary") or ""
        if not isinstance(status_text, str):
            return PremiumStatus.UNKNOWN

        return self.classify_tokens(status_text)

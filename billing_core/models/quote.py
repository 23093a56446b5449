from __future__ import annotations
from typing import Literal

QuoteStatus = Literal["draft", "sent", "accepted", "rejected", "expired"]

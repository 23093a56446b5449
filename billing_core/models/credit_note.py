from __future__ import annotations
from typing import Literal

CreditNoteStatus = Literal["draft", "issued", "applied"]

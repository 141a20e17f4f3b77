from __future__ import annotations
from enum import StrEnum

from clipwave.common.errors import ValidationError


class TrimMode(StrEnum):
    lossless = "lossless"   # stream copy, keyframe-bound start
    exact = "exact"         # frame-accurate re-encode

    @classmethod
    def parse(cls, value: "str | TrimMode") -> "TrimMode":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("Mode must be 'lossless' or 'exact'") from None

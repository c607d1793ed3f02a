from __future__ import annotations

DETECT_SAMPLE_SIZE = 4096

_UTF8_BOM = b"\xef\xbb\xbf"


def _has_double_byte_pair(sample: bytes) -> bool:
    # Adjacent bytes both in 0xA1-0xFE look like a KS X 1001 (EUC-KR/CP949) character.
    for first, second in zip(sample, sample[1:]):
        if 0xA1 <= first <= 0xFE and 0xA1 <= second <= 0xFE:
            return True
    return False


def detect_encoding(head: bytes) -> str:
    """Best-effort guess of an upload's text encoding from its first bytes.

    Advisory only: UTF-8 encoded Hangul also produces high byte pairs, so a
    "cp949" guess is not proof. `parse_csv` makes the real decision by trial
    decoding. Never raises.
    """
    sample = head[:DETECT_SAMPLE_SIZE]
    if sample.startswith(_UTF8_BOM):
        return "utf-8-sig"
    if _has_double_byte_pair(sample):
        return "cp949"
    return "utf-8"

"""
Punycode (RFC 3492 Bootstring) codec for IDN labels.

Converts between ASCII-compatible labels ("xn--...") and their Unicode text.
The codec is pure and works on code points, so labels outside the BMP
round-trip correctly.
"""

from __future__ import annotations

BASE = 36
TMIN = 1
TMAX = 26
SKEW = 38
DAMP = 700
INITIAL_BIAS = 72
INITIAL_N = 128
DELIMITER = "-"
ACE_PREFIX = "xn--"

# RFC 3492 section 6.4: arithmetic must stay within a 32-bit signed integer.
MAX_INT = 0x7FFFFFFF
MAX_CODEPOINT = 0x10FFFF


class PunycodeError(ValueError):
    """Raised when an ACE label is not a valid Bootstring sequence."""


def _adapt(delta: int, num_points: int, first_time: bool) -> int:
    delta = delta // DAMP if first_time else delta // 2
    delta += delta // num_points
    k = 0
    while delta > ((BASE - TMIN) * TMAX) // 2:
        delta //= BASE - TMIN
        k += BASE
    return k + ((BASE - TMIN + 1) * delta) // (delta + SKEW)


def _threshold(k: int, bias: int) -> int:
    if k <= bias:
        return TMIN
    if k >= bias + TMAX:
        return TMAX
    return k - bias


def _encode_digit(digit: int) -> str:
    # 0..25 -> a..z, 26..35 -> 0..9
    if digit < 26:
        return chr(ord("a") + digit)
    return chr(ord("0") + digit - 26)


def _decode_digit(char: str) -> int:
    if "0" <= char <= "9":
        return ord(char) - ord("0") + 26
    if "a" <= char <= "z":
        return ord(char) - ord("a")
    if "A" <= char <= "Z":
        return ord(char) - ord("A")
    raise PunycodeError(f"Invalid Punycode digit: {char!r}")


def decode(label: str) -> str:
    """
    Decode the part of an ACE label that follows "xn--".

    Raises PunycodeError for digits outside base 36, arithmetic overflow,
    code points out of range, or input truncated mid-sequence.
    """
    pos = label.rfind(DELIMITER)
    if pos >= 0:
        basic, extended = label[:pos], label[pos + 1 :]
    else:
        basic, extended = "", label

    for char in basic:
        if ord(char) >= 0x80:
            raise PunycodeError(f"Non-basic code point in basic segment: {char!r}")

    output = list(basic)
    n = INITIAL_N
    i = 0
    bias = INITIAL_BIAS
    index = 0

    while index < len(extended):
        old_i = i
        w = 1
        k = BASE
        while True:
            if index >= len(extended):
                raise PunycodeError("Truncated Punycode sequence")
            digit = _decode_digit(extended[index])
            index += 1

            i += digit * w
            if i > MAX_INT:
                raise PunycodeError("Punycode insertion index overflow")

            t = _threshold(k, bias)
            if digit < t:
                break

            w *= BASE - t
            if w > MAX_INT:
                raise PunycodeError("Punycode weight overflow")
            k += BASE

        length = len(output) + 1
        bias = _adapt(i - old_i, length, old_i == 0)
        n += i // length
        i %= length

        if n > MAX_CODEPOINT or 0xD800 <= n <= 0xDFFF:
            raise PunycodeError(f"Decoded code point out of range: {n:#x}")

        output.insert(i, chr(n))
        i += 1

    return "".join(output)


def encode(text: str) -> str:
    """
    Encode Unicode label text to the ACE suffix (without "xn--").

    Pure-ASCII input is returned unchanged.
    """
    codepoints = [ord(char) for char in text]
    if all(cp < 0x80 for cp in codepoints):
        return text

    output = [char for char in text if ord(char) < 0x80]
    basic_length = len(output)
    handled = basic_length
    if basic_length:
        output.append(DELIMITER)

    n = INITIAL_N
    delta = 0
    bias = INITIAL_BIAS

    while handled < len(codepoints):
        m = min(cp for cp in codepoints if cp >= n)
        delta += (m - n) * (handled + 1)
        n = m

        for cp in codepoints:
            if cp < n:
                delta += 1
            elif cp == n:
                q = delta
                k = BASE
                while True:
                    t = _threshold(k, bias)
                    if q < t:
                        break
                    output.append(_encode_digit(t + (q - t) % (BASE - t)))
                    q = (q - t) // (BASE - t)
                    k += BASE
                output.append(_encode_digit(q))
                bias = _adapt(delta, handled + 1, handled == basic_length)
                delta = 0
                handled += 1

        delta += 1
        n += 1

    return "".join(output)


def has_ace_label(hostname: str) -> bool:
    return any(label.lower().startswith(ACE_PREFIX) for label in (hostname or "").split("."))


def to_unicode(hostname: str) -> str:
    """Decode every "xn--" label of a dotted hostname."""
    if not has_ace_label(hostname):
        return hostname

    labels = []
    for label in hostname.split("."):
        if label.lower().startswith(ACE_PREFIX):
            labels.append(decode(label[len(ACE_PREFIX) :]))
        else:
            labels.append(label)
    return ".".join(labels)


def to_ascii(hostname: str) -> str:
    """Encode every non-ASCII label of a dotted hostname as "xn--" + Punycode."""
    labels = []
    for label in hostname.split("."):
        if label.isascii():
            labels.append(label)
        else:
            labels.append(ACE_PREFIX + encode(label))
    return ".".join(labels)


def is_valid_punycode(hostname: str) -> bool:
    """
    Check that every ACE label decodes and re-encodes to itself.

    Only "xn--" labels are checked; other labels, Unicode ones included,
    are left alone. Comparison is case-insensitive. A label that decodes
    but does not round-trip is treated as an encoding attack.
    """
    for label in (hostname or "").split("."):
        if not label.lower().startswith(ACE_PREFIX):
            continue
        try:
            decoded = decode(label[len(ACE_PREFIX) :])
        except PunycodeError:
            return False
        if (ACE_PREFIX + encode(decoded)).lower() != label.lower():
            return False
    return True

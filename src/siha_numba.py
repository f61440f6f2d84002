"""SIHA-512 implementation in Python, compiled with numba"""

from numba import njit
from numpy import empty, frombuffer, uint8, uint64, zeros

# Sizes of the sponge
STATE_BYTES = 128
BLOCK_BYTES = 64
DIGEST_BYTES = 64
NUM_WORDS = STATE_BYTES // 8

# Number of permutation rounds
_NUM_ROUNDS = 32

# Number of cellular automaton steps used to derive the initial state
_CA_STEPS = 64

# Mixing constants
_GOLDEN = uint64(0x9E3779B97F4A7C15)
_MIX_MUL = uint64(0xA3B195354A39B70D)
_LCG_MUL = uint64(0x41C64E6D)
_LCG_INC = uint64(0x3039)
_PERM_MUL = uint64(0x5DEECE66D)
_SBOX_MASK = uint64(0xD6E8FEB8A)

_BYTE_MASK = uint64(0xFF)
_BYTE_SIGN = uint64(0x80)
_BYTE_SIGN_EXT = uint64(0xFFFFFFFFFFFFFF00)
_MASK32 = uint64(0xFFFFFFFF)
_SIGN32 = uint64(0x80000000)
_SIGN32_EXT = uint64(0xFFFFFFFF00000000)


class EmptyInputError(ValueError):
    """Raised when asked to hash a zero-length input"""


@njit
def _rol(x, s):
    """
    Rotates x left by s

    Args:
        x (int): The input value to rotate
        s (int): The number of bits to rotate by

    Returns:
        int: The rotated value
    """
    return (uint64(x) << uint64(s)) | (uint64(x) >> uint64(64 - s))


@njit
def _reverse_bytes(x):
    """Byte-swaps a 64-bit value"""
    x = uint64(x)
    out = uint64(0)
    for _ in range(8):
        out = (out << uint64(8)) | (x & _BYTE_MASK)
        x = x >> uint64(8)
    return out


@njit
def _signed_byte(b):
    """Sign-extends a byte to 64 bits (0x80..0xFF become negative)"""
    x = uint64(b)
    if x & _BYTE_SIGN:
        x |= _BYTE_SIGN_EXT
    return x


@njit
def _initialize_state(data):
    """
    Derives the 128-byte starting state from the input.

    The seed repeats the input over the state and mixes in its length. It is
    then run through 64 steps of a rule-30 style automaton. Every step starts
    from an all-zero buffer and only writes interior cells, so both edge
    cells are zero afterwards.

    Args:
        data (ndarray): The input bytes, must not be empty

    Returns:
        ndarray: The 128-byte state
    """
    n = len(data)
    length_mix = uint64((n * 37) & 0xFF)

    cells = empty(STATE_BYTES, dtype=uint8)
    for i in range(STATE_BYTES):
        cells[i] = uint8(uint64(data[i % n]) ^ length_mix)

    for _ in range(_CA_STEPS):
        next_cells = zeros(STATE_BYTES, dtype=uint8)
        for i in range(1, STATE_BYTES - 1):
            next_cells[i] = uint8(
                uint64(cells[i - 1]) ^ (uint64(cells[i]) | uint64(cells[i + 1]))
            )
        cells = next_cells

    return cells


@njit
def _pad(data):
    """
    Pads the input to a whole number of blocks.

    A full padding block is appended when the input is already block
    aligned, so the end marker always has room.

    Args:
        data (ndarray): The input bytes, must not be empty

    Returns:
        ndarray: The padded buffer
    """
    n = len(data)
    padded_len = (n // BLOCK_BYTES + 1) * BLOCK_BYTES
    padded = zeros(padded_len, dtype=uint8)
    padded[:n] = data

    # Rotating mask over the padding region
    for i in range(n, padded_len):
        padded[i] = uint8(uint64(padded[i]) ^ uint64((i * 0x41C64E6D) & 0xFF))

    padded[n] = uint8((0x80 ^ (n * 31)) & 0xFF)
    last = uint64(0x01 ^ ((padded_len * 17) % 251))
    padded[padded_len - 1] = uint8(uint64(padded[padded_len - 1]) | last)

    return padded


@njit
def _content_hash(state):
    """Polynomial rolling hash over the signed state bytes, sign-extended from 32 bits"""
    h = uint64(1)
    for i in range(len(state)):
        h = (uint64(31) * h + _signed_byte(state[i])) & _MASK32
    if h & _SIGN32:
        h |= _SIGN32_EXT
    return h


@njit
def _round_constant(round_index, state):
    """
    Generates the constant for one (round, word) step.

    Args:
        round_index (int): The permutation round
        state (ndarray): The current 128-byte state

    Returns:
        uint64: The round constant
    """
    seed = _content_hash(state) ^ (uint64(round_index) * _GOLDEN)

    for i in range(len(state)):
        seed ^= _signed_byte(state[i]) * _MIX_MUL
        seed = _rol(seed, (i % 13) + 3)

    for _ in range(8):
        seed = _rol(seed * _LCG_MUL + _LCG_INC, 17)

    return seed


@njit
def _sbox(x):
    """
    The non-linear substitution step.

    The right shift is logical. The mask only covers the low 36 bits, so a
    sign-propagating shift would give the same result.

    Args:
        x (uint64): The input word

    Returns:
        uint64: The substituted word
    """
    x = uint64(x)
    x ^= (x << uint64(7)) & _GOLDEN
    x = _rol(x, 13)
    x ^= (x >> uint64(11)) & _SBOX_MASK
    x *= _MIX_MUL
    x ^= _reverse_bytes(x)
    return x


@njit
def _load_words(state, words):
    """Reads the state into 16 big-endian 64-bit words"""
    for w in range(NUM_WORDS):
        val = uint64(0)
        for j in range(8):
            val = (val << uint64(8)) | uint64(state[w * 8 + j])
        words[w] = val


@njit
def _store_word(state, w, val):
    """Writes word w back into the state, big-endian"""
    for j in range(8):
        state[w * 8 + 7 - j] = uint8(val & _BYTE_MASK)
        val = val >> uint64(8)


@njit
def _permute(state, words):
    """
    Applies the 32-round permutation to the state in place.

    Words are updated sequentially, so word i reads neighbours that may
    already have been updated in the same round. Each update is written back
    to the state bytes right away, and the round constant is recomputed for
    every word from those bytes.

    Args:
        state (ndarray): The 128-byte state, modified in place
        words (ndarray): Scratch array of 16 uint64 words
    """
    _load_words(state, words)

    for r in range(_NUM_ROUNDS):
        for i in range(NUM_WORDS):
            temp = words[(i + 1) % NUM_WORDS] ^ _round_constant(r, state)
            w = words[i] + temp
            w = _rol(w, (i % 7) + 5)
            w ^= words[(i + 2) % NUM_WORDS]

            # Feistel-style mixing step
            w ^= _reverse_bytes(words[(i + 3) % NUM_WORDS])
            w ^= (temp << uint64(3)) | (temp >> uint64(61))

            w *= _PERM_MUL
            w ^= _sbox(w)

            words[i] = w
            # write back now so later constants in this round see the update;
            # the reference digests depend on this ordering
            _store_word(state, i, w)


@njit(nogil=True)
def _siha(data):
    state = _initialize_state(data)
    padded = _pad(data)
    words = zeros(NUM_WORDS, dtype=uint64)

    # Absorb phase
    for offset in range(0, len(padded), BLOCK_BYTES):
        for j in range(BLOCK_BYTES):
            state[j] = uint8(uint64(state[j]) ^ uint64(padded[offset + j]))
        _permute(state, words)

    # Squeeze phase
    return state[:DIGEST_BYTES].copy()


def _as_array(data, allow_empty: bool = False):
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"expected a bytes-like object, got {type(data).__name__}")

    buf = bytearray(data)
    if not buf and not allow_empty:
        raise EmptyInputError("cannot hash an empty input")

    return frombuffer(buf, dtype=uint8)


def _as_state(state):
    arr = _as_array(state, allow_empty=True)
    if len(arr) != STATE_BYTES:
        raise ValueError(f"expected state to be {STATE_BYTES} bytes, got {len(arr)}")
    return arr


def initialize_state(data: bytes) -> bytes:
    """
    Compute the initial 128-byte state for an input.

    Raises:
        EmptyInputError: if data is empty
    """
    return _initialize_state(_as_array(data)).tobytes()


def pad(data: bytes) -> bytes:
    """
    Pad an input to a multiple of 64 bytes.

    Raises:
        EmptyInputError: if data is empty
    """
    return _pad(_as_array(data)).tobytes()


def round_constant(round_index: int, state: bytes) -> int:
    """Compute the round constant for a round and a 128-byte state."""
    return int(_round_constant(int(round_index), _as_state(state)))


def sbox(x: int) -> int:
    """Apply the substitution step to a 64-bit value."""
    return int(_sbox(uint64(x & 0xFFFFFFFFFFFFFFFF)))


def permute(state: bytes) -> bytes:
    """Return the permutation of a 128-byte state. The input is not modified."""
    arr = _as_state(state)
    _permute(arr, zeros(NUM_WORDS, dtype=uint64))
    return arr.tobytes()


def siha(data: bytes) -> bytes:
    """
    Compute the SIHA-512 hash of the input data.

    Args:
        data (bytes): The input data to hash, must not be empty.

    Returns:
        bytes: The 64-byte digest.

    Raises:
        EmptyInputError: if data is empty
        TypeError: if data is not bytes-like
    """
    return _siha(_as_array(data)).tobytes()


def bytes_to_hex(data: bytes) -> str:
    """Lowercase hex, two digits per byte, no separators."""
    return bytes(data).hex()


def siha_hex(data: bytes) -> str:
    return bytes_to_hex(siha(data))


if __name__ == "__main__":
    import sys
    print(siha_hex(sys.argv[1].encode()))

import pytest

from siha_numba import (
    EmptyInputError,
    bytes_to_hex,
    initialize_state,
    pad,
    permute,
    round_constant,
    sbox,
    siha,
    siha_hex,
)

lorem_ipsum = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Quisque at vehicula ligula, nec ullamcorper quam. Aliquam interdum euismod porta. Aliquam rhoncus erat ligula, vitae vulputate felis varius non. Donec congue sapien sed lorem lacinia euismod. Suspendisse ut elit felis. In at fermentum turpis. Class aptent taciti sociosqu ad litora torquent per conubia nostra, per inceptos himenaeos. Suspendisse dignissim risus sapien, eget scelerisque sapien vestibulum et. Proin venenatis erat in hendrerit dictum. Etiam blandit dapibus sodales. Morbi eu bibendum nunc."
)


def bit_diff(a: bytes, b: bytes) -> int:
    return sum(bin(x ^ y).count("1") for x, y in zip(a, b))


def test_siha_known_vectors():
    assert (
        siha(b"Hello World").hex()
        == "85ec2f143837046baf246f8521c8f2c1c615340cb428f2eb046250e3c747a4fe1800fd9d0b536693c96a519702dee0904bc0498413bdf986031c69d49d6d9ba1"
    )

    assert (
        siha(b"a").hex()
        == "68843f93b015460b2ae67e6a6e4764be530a38d60c1344cd1b22db5fd6ff7378fcbe2ed903ac5d348a7184207cf7a3fcbaecdb221c1816c8efda94be308a2d0f"
    )

    assert (
        siha_hex(b"abc")
        == "a8dfb9466e52b56e021b679359d3a3c334e361d859d9ebe23957b2155695a0d7619b5af6dc067268bbbd7b16dea1ca1fc5b7ff6ae833745064278d397e2b8089"
    )


@pytest.mark.parametrize(
    "length, expected",
    [
        (63, "2ead470e5b7765667dc2586aa8802ee3cbc7d2200d73141e46266613a15cb7488ea43f55287fdc69ef8f735287b485b246c682b6c7f1ba82ff7533f630d34fa0"),
        (64, "77da59d10825af052ec26d2c7bf0ed75732e3d5baa87d5e3137a492c6465b1099ee0f5b3c61ec6ecf9501052715acca981138d86259320832b35c7085eb6481b"),
        (65, "1fc9c680362144cc5cae894e3db601af65e1b85d381a9cfddfb8502c4c5f7115aab6cf2223c2f00f3b873e7259855fb41f5d6dd7e6160a73026e8bddf357673c"),
    ],
)
def test_block_boundary_vectors(length: int, expected: str):
    assert siha(b"A" * length).hex() == expected


@pytest.mark.parametrize("length, padded_len", [(1, 64), (63, 64), (64, 128), (65, 128), (128, 192)])
def test_pad_length(length: int, padded_len: int):
    padded = pad(b"A" * length)
    assert len(padded) == padded_len
    assert padded[:length] == b"A" * length

    # end marker lands right after the input, even in an appended block
    marker = (0x80 ^ (length * 31)) & 0xFF
    if length == padded_len - 1:
        # marker shares the last byte with the trailing OR
        marker |= 0x01 ^ ((padded_len * 17) % 251)
    assert padded[length] == marker


def test_pad_marker_on_last_byte():
    padded = pad(b"A" * 63)
    assert padded[63] == ((0x80 ^ (63 * 31)) & 0xFF) | (0x01 ^ ((64 * 17) % 251))
    assert padded[63] == 0x75


def test_pad_bytes():
    assert (
        pad(b"abc").hex()
        == "616263ddb4218efb68d542af1c89f663d03daa1784f15ecb38a5127fec59c633a00d7ae754c12e9b0875e24fbc29960370dd4ab72491fe6bd845b21f8cf966d7"
    )


def test_boundary_digests_distinct():
    digests = {siha(b"A" * n) for n in (63, 64, 65)}
    assert len(digests) == 3


def test_initialize_state():
    state = initialize_state(b"abc")
    assert len(state) == 128

    # edge cells are never written by the automaton
    assert state[0] == 0
    assert state[127] == 0

    assert state.hex() == (
        "0003000300030003000300030003000300030003000300030003000300030003000300030003000300030003000300030003000300030003000300030003000300000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000000"
    )


def test_initialize_state_depends_only_on_input():
    assert initialize_state(b"abc") == initialize_state(bytearray(b"abc"))
    assert initialize_state(b"abc") != initialize_state(b"abd")


def test_sbox():
    assert sbox(0) == 0
    assert sbox(1) == 0x3206487171480632
    assert sbox(0x0123456789ABCDEF) == 0xC52F4DB7B74D2FC5


@pytest.mark.parametrize("x", [1, 0xDEADBEEF, 0x8000000000000000, 0xFFFFFFFFFFFFFFFF])
def test_sbox_output_is_byte_symmetric(x: int):
    # the final x ^= bswap(x) makes the output equal to its own byte swap
    out = sbox(x).to_bytes(8, "big")
    assert out == out[::-1]


def test_round_constant():
    zeros = bytes(128)
    assert round_constant(0, zeros) == 0xCEE0002062211686
    assert round_constant(1, zeros) == 0x8D7C4E5823B49A5F

    state = bytearray(zeros)
    state[127] = 1
    assert round_constant(0, bytes(state)) != round_constant(0, zeros)


def test_round_constant_rejects_bad_state():
    with pytest.raises(ValueError):
        round_constant(0, bytes(127))


def test_permute():
    state = initialize_state(b"abc")
    permuted = permute(state)
    assert len(permuted) == 128
    assert permuted != state
    assert permute(state) == permuted

    assert permuted.hex() == (
        "c2a3a8b8da2a9dbf569d6df02e27bfd6c91551c0d261ecfa27ed156f9b750570dd184912d56388f198486f50af18591a19543c7b7ad9c4b4598a5e5eea54000d"
        "c198cc20bc4315f6efe21ddce7dbe765683803a5c7fc36f04210779e5768702becaf0a3fa0941af375b41e7cfeb17d9c1b419f75e3b576c1568d49e66eec5e8d"
    )

    with pytest.raises(ValueError):
        permute(bytes(64))


def test_determinism():
    inputs = [b"a", b"Hello World", b"\x00" * 100, lorem_ipsum.encode()]
    for data in inputs:
        assert siha(data) == siha(data)

    # call history does not leak into later digests
    first = siha(b"Hello World")
    siha(lorem_ipsum.encode())
    assert siha(b"Hello World") == first


@pytest.mark.parametrize("size", [1, 7, 8, 63, 64, 65, 127, 128, 129, 1000])
def test_output_size(size: int):
    assert len(siha(b"\xab" * size)) == 64


def test_bytes_like_inputs():
    expected = siha(b"Hello World")
    assert siha(bytearray(b"Hello World")) == expected
    assert siha(memoryview(b"Hello World")) == expected


def test_empty_input():
    with pytest.raises(EmptyInputError):
        siha(b"")

    with pytest.raises(EmptyInputError):
        pad(b"")

    with pytest.raises(EmptyInputError):
        initialize_state(bytearray())


def test_rejects_str():
    with pytest.raises(TypeError):
        siha("Hello World")


def test_avalanche():
    base = bytes((i * 7 + 1) & 0xFF for i in range(32))
    h_base = siha(base)

    total_diff = 0
    num_flips = 0
    for byte_pos in range(len(base)):
        for bit_pos in range(8):
            modified = bytearray(base)
            modified[byte_pos] ^= 1 << bit_pos
            total_diff += bit_diff(h_base, siha(modified))
            num_flips += 1

    avg_diff = total_diff / num_flips
    assert 220 <= avg_diff <= 292, f"expected ~256 of 512 bits, got {avg_diff:.1f}"


def test_bytes_to_hex():
    assert bytes_to_hex(b"") == ""
    assert bytes_to_hex(b"\x00\x0f\xab\xff") == "000fabff"
    assert len(siha_hex(b"x")) == 128

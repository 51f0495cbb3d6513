import base64
import json
import zlib

import pytest

from nnviz.codec import DecodeError, decode, encode
from nnviz.editor import StructuralEditor
from nnviz.network import ValidationError, default_network


def pack(doc_text: str) -> str:
    packed = zlib.compress(doc_text.encode("utf-8"))
    return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")


def test_round_trip_default():
    net = default_network()
    assert decode(encode(net)) == net


def test_round_trip_preserves_hidden_layers_and_labels():
    editor = StructuralEditor()
    net = editor.add_hidden_layer(default_network())
    net = editor.update_label(net, "input-0", "Émojis 🎉 & co")
    net = editor.update_weight(net, "weight-ho-0-1-0", -0.125)
    assert decode(encode(net)) == net


def test_encoded_text_is_url_safe():
    text = encode(default_network())
    assert text
    assert set(text) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def test_decode_tolerates_surrounding_whitespace():
    text = encode(default_network())
    assert decode(f"  {text}\n") == default_network()


@pytest.mark.parametrize("text", [
    "",
    "   ",
    None,
    "not base64 at all!",
    "AAAA",
    pack("{not json"),
    pack("[1, 2, 3]"),
    pack(json.dumps({"inputLayer": [], "outputLayer": [{"label": "x"}]})),
])
def test_corrupt_input_raises_decode_error(text):
    with pytest.raises(DecodeError):
        decode(text)


def test_decode_error_is_not_a_validation_error():
    with pytest.raises(DecodeError) as exc:
        decode(pack(json.dumps({"inputLayer": "nope", "outputLayer": []})))
    assert not isinstance(exc.value, ValidationError)
    assert isinstance(exc.value.__cause__, ValidationError)


def oversized_number_doc(digits: int) -> str:
    return (
        '{"inputLayer":[{"label":"a","value":1' + "0" * digits + ',"weights":[1]}],'
        '"outputLayer":[{"label":"y"}]}'
    )


@pytest.mark.parametrize("digits", [400, 5000])
def test_oversized_numbers_raise_decode_error(digits):
    with pytest.raises(DecodeError):
        decode(pack(oversized_number_doc(digits)))


def test_deeply_nested_payload_raises_decode_error():
    with pytest.raises(DecodeError):
        decode(pack("[" * 100000 + "]" * 100000))

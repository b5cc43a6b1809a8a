import base64
import hashlib
import hmac

import pytest

from settlement.core.signature import (
    sign_payment,
    sign_webhook_body,
    verify_payment_signature,
    verify_webhook_signature,
)

SECRET = "whsec_test"
BODY = b'{"event":"payment.captured","payload":{}}'


def mutate(signature: str, position: int) -> str:
    replacement = "A" if signature[position] != "A" else "B"
    return signature[:position] + replacement + signature[position + 1 :]


class TestWebhookSignature:
    def test_valid_signature_is_accepted(self):
        # Given
        signature = sign_webhook_body(BODY, SECRET)

        # When
        result = verify_webhook_signature(BODY, signature, SECRET)

        # Then
        assert result is True

    def test_signature_is_base64_of_sha256_digest(self):
        # When
        signature = sign_webhook_body(BODY, SECRET)

        # Then
        assert len(base64.b64decode(signature)) == 32

    @pytest.mark.parametrize("position", [0, 10, len(BODY) - 1])
    def test_any_body_byte_change_is_rejected(self, position: int):
        # Given
        signature = sign_webhook_body(BODY, SECRET)
        tampered = bytearray(BODY)
        tampered[position] ^= 0x01

        # When
        result = verify_webhook_signature(bytes(tampered), signature, SECRET)

        # Then
        assert result is False

    @pytest.mark.parametrize("position", [0, 1, 21, 42, 43])
    def test_any_signature_character_change_is_rejected(self, position: int):
        # Given
        signature = mutate(sign_webhook_body(BODY, SECRET), position)

        # When
        result = verify_webhook_signature(BODY, signature, SECRET)

        # Then
        assert result is False

    def test_wrong_secret_is_rejected(self):
        # Given
        signature = sign_webhook_body(BODY, "another_secret")

        # When
        result = verify_webhook_signature(BODY, signature, SECRET)

        # Then
        assert result is False

    def test_hex_encoded_digest_is_rejected(self):
        # Given
        signature = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()

        # When
        result = verify_webhook_signature(BODY, signature, SECRET)

        # Then
        assert result is False

    @pytest.mark.parametrize("signature", [None, ""])
    def test_missing_signature_is_rejected(self, signature):
        assert verify_webhook_signature(BODY, signature, SECRET) is False

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret_fails_closed(self, secret):
        # Given
        signature = sign_webhook_body(BODY, SECRET)

        # When
        result = verify_webhook_signature(BODY, signature, secret)

        # Then
        assert result is False

    def test_non_ascii_signature_is_rejected(self):
        assert verify_webhook_signature(BODY, "sïgnature", SECRET) is False


class TestPaymentSignature:
    def test_valid_signature_is_accepted(self):
        # Given
        signature = sign_payment("order_ABC", "pay_XYZ", SECRET)

        # When
        result = verify_payment_signature("order_ABC", "pay_XYZ", signature, SECRET)

        # Then
        assert result is True

    def test_signature_is_lowercase_hex(self):
        # When
        signature = sign_payment("order_ABC", "pay_XYZ", SECRET)

        # Then
        assert len(signature) == 64
        assert signature == signature.lower()
        int(signature, 16)

    @pytest.mark.parametrize("position", [0, 1, 31, 62, 63])
    def test_any_signature_character_change_is_rejected(self, position: int):
        # Given
        signature = mutate(sign_payment("order_ABC", "pay_XYZ", SECRET), position)

        # When
        result = verify_payment_signature("order_ABC", "pay_XYZ", signature, SECRET)

        # Then
        assert result is False

    def test_swapped_ids_are_rejected(self):
        # Given
        signature = sign_payment("order_ABC", "pay_XYZ", SECRET)

        # When
        result = verify_payment_signature("pay_XYZ", "order_ABC", signature, SECRET)

        # Then
        assert result is False

    def test_base64_encoded_digest_is_rejected(self):
        # Given
        signature = sign_webhook_body(b"order_ABC|pay_XYZ", SECRET)

        # When
        result = verify_payment_signature("order_ABC", "pay_XYZ", signature, SECRET)

        # Then
        assert result is False

    def test_missing_secret_fails_closed(self):
        # Given
        signature = sign_payment("order_ABC", "pay_XYZ", SECRET)

        # When
        result = verify_payment_signature("order_ABC", "pay_XYZ", signature, None)

        # Then
        assert result is False

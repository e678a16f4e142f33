"""AES-CBC text encryption (double and single pass) plus key/IV validation.

Double mode: the plaintext key/IV pair encrypts the UTF-8 text, the Base64
result is encrypted again with the same pair and Base64-encoded once more.
The IV is fixed per key profile, so the output is deterministic: equal
inputs give equal ciphertexts. That is an accepted weakness of the scheme
and must stay that way: do not randomise the IV.

Single mode: key and IV arrive Base64-encoded and one AES-CBC pass is made.
"""
from __future__ import annotations
import base64, binascii, logging
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import (
	VALID_KEY_LENGTHS, IV_LENGTH, BLOCK_SIZE_BITS, DETECT_MIN_LENGTH, DETECT_MIN_BASE64_LENGTH
)

log = logging.getLogger(__name__)

class CryptoError(Exception):
	pass

class InvalidKeyMaterial(CryptoError):
	pass

class InvalidEncoding(CryptoError):
	pass

class DecryptionFailed(CryptoError):
	pass


def _b64decode(text: str) -> bytes:
	"""Strict Base64 decode; raises binascii.Error / ValueError on bad input."""
	return base64.b64decode(text, validate=True)

def _b64encode(data: bytes) -> str:
	return base64.b64encode(data).decode('ascii')


def is_valid_plaintext_key(key: str) -> bool:
	if not key:
		return False
	return len(key.encode('utf-8')) in VALID_KEY_LENGTHS

def is_valid_plaintext_iv(iv: str) -> bool:
	return bool(iv) and len(iv.encode('utf-8')) == IV_LENGTH

def is_valid_base64_key(value: str, expected_bytes: int) -> bool:
	try:
		return len(_b64decode(value)) == expected_bytes
	except (binascii.Error, ValueError, TypeError):
		return False

def looks_like_encrypted(text: str) -> bool:
	"""UI hint only: does `text` look like Base64 ciphertext?

	Not a verification and never a gate before decrypting.
	"""
	if not text or not text.strip():
		return False
	if len(text) < DETECT_MIN_LENGTH:
		return False
	try:
		_b64decode(text)
	except (binascii.Error, ValueError):
		return False
	return len(text) >= DETECT_MIN_BASE64_LENGTH and len(text) % 4 == 0


class AesCbcCipher:
	def __init__(self):
		self._backend = default_backend()

	# --- raw AES-CBC/PKCS7 ---

	def _encrypt_bytes(self, data: bytes, key: bytes, iv: bytes) -> bytes:
		padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
		padded = padder.update(data) + padder.finalize()
		enc = Cipher(algorithms.AES(key), modes.CBC(iv), backend=self._backend).encryptor()
		return enc.update(padded) + enc.finalize()

	def _decrypt_bytes(self, data: bytes, key: bytes, iv: bytes) -> bytes:
		dec = Cipher(algorithms.AES(key), modes.CBC(iv), backend=self._backend).decryptor()
		padded = dec.update(data) + dec.finalize()
		unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
		return unpadder.update(padded) + unpadder.finalize()

	# --- key material ---

	@staticmethod
	def _plaintext_material(key: str, iv: str) -> tuple[bytes, bytes]:
		if not is_valid_plaintext_key(key):
			n = len((key or '').encode('utf-8'))
			raise InvalidKeyMaterial(f"Key must be 16, 24 or 32 bytes (got {n})")
		if not is_valid_plaintext_iv(iv):
			n = len((iv or '').encode('utf-8'))
			raise InvalidKeyMaterial(f"IV must be {IV_LENGTH} bytes (got {n})")
		return key.encode('utf-8'), iv.encode('utf-8')

	@staticmethod
	def _base64_material(key_b64: str, iv_b64: str) -> tuple[bytes, bytes]:
		try:
			key = _b64decode(key_b64); iv = _b64decode(iv_b64)
		except (binascii.Error, ValueError, TypeError) as e:
			raise InvalidEncoding(f"Key/IV is not valid Base64: {e}")
		if len(key) not in VALID_KEY_LENGTHS:
			raise InvalidKeyMaterial(f"Decoded key must be 16, 24 or 32 bytes (got {len(key)})")
		if len(iv) != IV_LENGTH:
			raise InvalidKeyMaterial(f"Decoded IV must be {IV_LENGTH} bytes (got {len(iv)})")
		return key, iv

	# --- double mode (plaintext key/IV) ---

	def encrypt_double(self, plaintext: str, key: str, iv: str) -> str:
		if not plaintext:
			return ''
		k, v = self._plaintext_material(key, iv)
		first = _b64encode(self._encrypt_bytes(plaintext.encode('utf-8'), k, v))
		return _b64encode(self._encrypt_bytes(first.encode('utf-8'), k, v))

	def decrypt_double(self, ciphertext: str, key: str, iv: str) -> str:
		if not ciphertext:
			return ''
		k, v = self._plaintext_material(key, iv)
		try:
			outer = _b64decode(ciphertext)
		except (binascii.Error, ValueError) as e:
			raise InvalidEncoding(f"Input is not encrypted text: {e}")
		# Both passes report the same error so callers cannot tell which one failed.
		try:
			first = self._decrypt_bytes(outer, k, v).decode('utf-8')
			inner = _b64decode(first)
			return self._decrypt_bytes(inner, k, v).decode('utf-8')
		except (ValueError, binascii.Error) as e:
			log.debug("double decrypt failed: %s", type(e).__name__)
			raise DecryptionFailed("Decryption failed. Invalid ciphertext or keys.") from None

	# --- single mode (Base64 key/IV) ---

	def encrypt_single(self, plaintext: str, key_b64: str, iv_b64: str) -> str:
		if not plaintext:
			return ''
		k, v = self._base64_material(key_b64, iv_b64)
		return _b64encode(self._encrypt_bytes(plaintext.encode('utf-8'), k, v))

	def decrypt_single(self, ciphertext: str, key_b64: str, iv_b64: str) -> str:
		if not ciphertext:
			return ''
		k, v = self._base64_material(key_b64, iv_b64)
		try:
			data = _b64decode(ciphertext)
		except (binascii.Error, ValueError) as e:
			raise InvalidEncoding(f"Input is not encrypted text: {e}")
		try:
			return self._decrypt_bytes(data, k, v).decode('utf-8')
		except ValueError:
			raise DecryptionFailed("Decryption failed. Invalid ciphertext or keys.") from None


_default = AesCbcCipher()

def encrypt_double(plaintext: str, key: str, iv: str) -> str:
	return _default.encrypt_double(plaintext, key, iv)

def decrypt_double(ciphertext: str, key: str, iv: str) -> str:
	return _default.decrypt_double(ciphertext, key, iv)

def encrypt_single(plaintext: str, key_b64: str, iv_b64: str) -> str:
	return _default.encrypt_single(plaintext, key_b64, iv_b64)

def decrypt_single(ciphertext: str, key_b64: str, iv_b64: str) -> str:
	return _default.decrypt_single(ciphertext, key_b64, iv_b64)

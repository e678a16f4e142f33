"""Secret blob protection ("protect bytes for the current user").

The key configuration never stores key material in the clear. It hands
bytes to a SecretBlobStore and writes whatever comes back. The local
implementation keeps a random per-user key file next to the data and seals
blobs with AES-256-GCM.
"""
from __future__ import annotations
import os, secrets, logging
from pathlib import Path
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend
from config.settings import PROTECT_KEY_LENGTH, PROTECT_IV_LENGTH, AUTH_TAG_LENGTH

log = logging.getLogger(__name__)

class ProtectError(Exception):
	pass

class SecretBlobStore:
	def protect(self, data: bytes) -> bytes:
		raise NotImplementedError

	def unprotect(self, blob: bytes) -> bytes:
		raise NotImplementedError


class LocalSecretBlobStore(SecretBlobStore):
	"""AES-256-GCM with a key file readable only by the owner.

	Blob layout: iv (16) + ciphertext + tag (16).
	"""

	def __init__(self, key_path: Path):
		self.key_path = Path(key_path)
		self._backend = default_backend()
		self._key: bytes | None = None

	def _load_key(self) -> bytes:
		if self._key is not None:
			return self._key
		if self.key_path.exists():
			key = self.key_path.read_bytes()
			if len(key) != PROTECT_KEY_LENGTH:
				raise ProtectError('Corrupt protection key file')
		else:
			key = secrets.token_bytes(PROTECT_KEY_LENGTH)
			self.key_path.parent.mkdir(parents=True, exist_ok=True)
			fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
			with os.fdopen(fd, 'wb') as f:
				f.write(key)
			log.info("Created protection key %s", self.key_path)
		self._key = key
		return key

	def protect(self, data: bytes) -> bytes:
		key = self._load_key()
		iv = secrets.token_bytes(PROTECT_IV_LENGTH)
		enc = Cipher(algorithms.AES(key), modes.GCM(iv), backend=self._backend).encryptor()
		ct = enc.update(data) + enc.finalize()
		return iv + ct + enc.tag

	def unprotect(self, blob: bytes) -> bytes:
		if len(blob) < PROTECT_IV_LENGTH + AUTH_TAG_LENGTH:
			raise ProtectError('Protected blob too short')
		if self._key is None and not self.key_path.exists():
			raise ProtectError('Protection key missing')
		key = self._load_key()
		iv = blob[:PROTECT_IV_LENGTH]; tag = blob[-AUTH_TAG_LENGTH:]; ct = blob[PROTECT_IV_LENGTH:-AUTH_TAG_LENGTH]
		dec = Cipher(algorithms.AES(key), modes.GCM(iv, tag), backend=self._backend).decryptor()
		try:
			return dec.update(ct) + dec.finalize()
		except InvalidTag:
			raise ProtectError('Unprotect failed: authentication tag mismatch') from None

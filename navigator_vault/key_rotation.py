"""
Vault Key Rotation — Re-encryption of a user's records under a new key.

Runs in two phases so that decryption problems never cause writes:
1. every record is decrypted with the old key and re-encrypted with the
   new key in memory, in a worker thread; the first failure aborts with no
   record written.
2. the re-encrypted bodies are written back in batches; writes inside a
   batch run concurrently. A failing batch stops the rotation.

The store is not assumed to be transactional. After a persistence failure
the original bodies of already rewritten records are written back (best
effort); ids that could not be restored stay readable only with the new
key and are reported in the error.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Never log plaintext or ciphertext values.
"""
import asyncio
import logging
from typing import Optional

from .crypto import KeyType, decrypt, encrypt
from .exceptions import DecryptionError, RotationFailed
from .models import EncryptedRecord, Profile, RotationReport
from .store import VaultStore

logger = logging.getLogger("navigator.vault")


def _reencrypt_all(
    records: list[EncryptedRecord],
    old_key: KeyType,
    new_key: KeyType,
    backend: Optional[str],
) -> list[EncryptedRecord]:
    rewritten = []
    for record in records:
        try:
            plaintext = decrypt(record.encrypted_body, old_key, backend)
        except DecryptionError as err:
            logger.error(
                "Cannot decrypt record id=%s during rotation: %s",
                record.id, err,
            )
            raise RotationFailed(
                "Record could not be decrypted with the current key",
                stage="decryption",
                record_id=record.id,
                failed=[record.id],
            ) from err
        rewritten.append(
            EncryptedRecord(
                id=record.id,
                encrypted_body=encrypt(plaintext, new_key, backend),
            )
        )
    return rewritten


async def _restore(
    store: VaultStore,
    originals: dict[str, EncryptedRecord],
    record_ids: list[str],
) -> list[str]:
    """Write back the pre-rotation bodies of record_ids.

    Returns:
        Ids that were restored successfully.
    """
    restored = []
    for record_id in record_ids:
        try:
            await store.put_encrypted_record(
                record_id, originals[record_id].encrypted_body,
            )
        except Exception as err:
            logger.error(
                "Could not restore record id=%s after failed rotation: %s",
                record_id, err,
            )
            continue
        restored.append(record_id)
    if record_ids:
        logger.warning(
            "Restored %d of %d rewritten record(s) after failed rotation",
            len(restored), len(record_ids),
        )
    return restored


async def rotate_records(
    store: VaultStore,
    user_id: str,
    old_key: KeyType,
    new_key: KeyType,
    new_profile: Optional[Profile] = None,
    batch_size: int = 100,
    backend: Optional[str] = None,
) -> RotationReport:
    """Re-encrypt every record of user_id from old_key to new_key.

    When ``new_profile`` is given it is written after every record, so a
    stored profile never points at a key the records are not under.

    Args:
        store: Vault store adapter.
        user_id: Owner of the records.
        old_key: Key the records are currently encrypted under.
        new_key: Key to re-encrypt with.
        new_profile: Salt and verifier matching new_key.
        batch_size: Number of concurrent writes per batch.
        backend: AEAD backend name.

    Returns:
        RotationReport listing every rewritten record id.

    Raises:
        RotationFailed: stage ``decryption`` (nothing written) or
            ``persistence`` (``succeeded`` lists rewritten ids,
            ``restored`` those rolled back afterwards).
    """
    records = await store.list_encrypted_records(user_id)
    report = RotationReport(total=len(records))
    logger.info(
        "Starting record rotation for user=%s: %d record(s), batch_size=%d",
        user_id, len(records), batch_size,
    )

    rewritten = await asyncio.to_thread(
        _reencrypt_all, records, old_key, new_key, backend,
    )
    originals = {record.id: record for record in records}

    for offset in range(0, len(rewritten), batch_size):
        batch = rewritten[offset:offset + batch_size]
        batch_num = (offset // batch_size) + 1
        logger.debug("Writing batch %d (%d records)", batch_num, len(batch))
        results = await asyncio.gather(
            *(
                store.put_encrypted_record(record.id, record.encrypted_body)
                for record in batch
            ),
            return_exceptions=True,
        )
        first_error = None
        for record, result in zip(batch, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Error writing rotated record id=%s: %s", record.id, result,
                )
                report.failed.append(record.id)
                if first_error is None:
                    first_error = result
            else:
                report.rotated.append(record.id)
        if first_error is not None:
            restored = await _restore(store, originals, report.rotated)
            raise RotationFailed(
                "Writing re-encrypted records failed",
                stage="persistence",
                record_id=report.failed[0],
                succeeded=report.rotated,
                failed=report.failed,
                restored=restored,
            ) from first_error

    if new_profile is not None:
        try:
            await store.put_profile(user_id, new_profile)
        except Exception as err:
            logger.error(
                "Error writing rotated profile for user=%s: %s", user_id, err,
            )
            restored = await _restore(store, originals, report.rotated)
            raise RotationFailed(
                "Writing the new vault profile failed",
                stage="persistence",
                succeeded=report.rotated,
                restored=restored,
            ) from err

    logger.info(
        "Record rotation complete for user=%s: %d rotated",
        user_id, len(report.rotated),
    )
    return report

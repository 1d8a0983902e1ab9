import time

import pytest
from jose import jwt

from models.download_model import DownloadGrant, DownloadedFile
from services import download_tokens
from services.exceptions import NotFound, NotFoundOnDisk, InsufficientQuota, InvalidOrExpired

NOW = 1_700_000_000


def test_issue_download_claims(db, reload_user, make_feed_item):
    item = make_feed_item(size_mb=512)
    issued = download_tokens.issue_download(db, reload_user(), item.id, now=NOW)

    payload = jwt.decode(issued.token, download_tokens.token_secret(), algorithms=["HS256"],
                         options={"verify_exp": False})
    assert payload["filePath"] == item.storage_key
    assert payload["fileName"] == "1740559919539_item1.zip"
    assert payload["fileSize"] == 512 * 1024 * 1024
    assert payload["userId"] == 1
    assert payload["expiresAt"] == NOW + 300
    assert issued.expires_at == NOW + 300
    assert issued.remaining_quota == pytest.approx(1.5)
    assert issued.url == f"http://localhost:8000/api/feed/secure-download?token={issued.token}"


def test_issue_download_records_grant_and_history(db, reload_user, make_feed_item):
    item = make_feed_item(size_mb=256)
    issued = download_tokens.issue_download(db, reload_user(), item.id, now=NOW)

    grant = db.query(DownloadGrant).one()
    assert grant.user_id == 1
    assert grant.feed_item_id == item.id
    assert grant.charged_gb == pytest.approx(0.25)
    assert grant.expires_at == issued.expires_at
    assert grant.redeemed_count == 0
    assert db.query(DownloadedFile).count() == 1


def test_issue_download_uses_configured_ttl_and_base_url(db, reload_user, make_feed_item, monkeypatch):
    monkeypatch.setenv("DOWNLOAD_TOKEN_TTL", "60")
    monkeypatch.setenv("BASE_URL", "https://vault.example.com/")
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id, now=NOW)

    assert issued.expires_at == NOW + 60
    assert issued.url.startswith("https://vault.example.com/api/feed/secure-download?token=")


def test_issue_download_unknown_item(db, reload_user):
    with pytest.raises(NotFound):
        download_tokens.issue_download(db, reload_user(), 404, now=NOW)


def test_issue_download_missing_file_charges_nothing(db, reload_user, make_feed_item):
    item = make_feed_item(size_mb=100, on_disk=False)
    with pytest.raises(NotFoundOnDisk):
        download_tokens.issue_download(db, reload_user(), item.id, now=NOW)
    assert reload_user().download_limit == pytest.approx(2.0)


def test_issue_download_insufficient_quota(db, reload_user, make_feed_item):
    item = make_feed_item(size_mb=3 * 1024)
    with pytest.raises(InsufficientQuota):
        download_tokens.issue_download(db, reload_user(), item.id, now=NOW)
    db.rollback()
    assert reload_user().download_limit == pytest.approx(2.0)
    assert db.query(DownloadGrant).count() == 0


@pytest.mark.parametrize("offset, valid", [(0, True), (299, True), (300, True), (301, False)])
def test_verify_expiry_boundary(db, reload_user, make_feed_item, offset, valid):
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id, now=NOW)

    if valid:
        payload = download_tokens.verify_download_token(issued.token, now=NOW + offset)
        assert payload["expiresAt"] == NOW + 300
    else:
        with pytest.raises(InvalidOrExpired):
            download_tokens.verify_download_token(issued.token, now=NOW + offset)


def test_verify_tampered_signature(db, reload_user, make_feed_item):
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id, now=NOW)
    header, body, signature = issued.token.split(".")
    flipped = "A" if signature[0] != "A" else "B"
    tampered = ".".join([header, body, flipped + signature[1:]])

    with pytest.raises(InvalidOrExpired):
        download_tokens.verify_download_token(tampered, now=NOW)


def test_verify_rejects_other_secret(monkeypatch):
    token = jwt.encode({"expiresAt": NOW + 300, "jti": "x", "typ": "download", "fileName": "a.zip"},
                       "someone-elses-secret", algorithm="HS256")
    with pytest.raises(InvalidOrExpired):
        download_tokens.verify_download_token(token, now=NOW)


def test_verify_rejects_access_token():
    token = jwt.encode({"sub": "1", "expiresAt": NOW + 300, "jti": "x", "typ": "access"},
                       download_tokens.token_secret(), algorithm="HS256")
    with pytest.raises(InvalidOrExpired):
        download_tokens.verify_download_token(token, now=NOW)


def test_verify_rejects_garbage():
    with pytest.raises(InvalidOrExpired):
        download_tokens.verify_download_token("not.a.token", now=NOW)


def test_verify_uses_wall_clock_by_default(db, reload_user, make_feed_item):
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id)
    assert download_tokens.verify_download_token(issued.token)["expiresAt"] >= int(time.time())


def test_multi_use_policy_allows_repeat_redemption(db, reload_user, make_feed_item):
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id, now=NOW)
    payload = download_tokens.verify_download_token(issued.token, now=NOW)

    download_tokens.redeem(db, payload)
    grant = download_tokens.redeem(db, payload)
    assert grant.redeemed_count == 2


def test_single_use_policy_rejects_second_redemption(db, reload_user, make_feed_item, monkeypatch):
    monkeypatch.setenv("DOWNLOAD_TOKEN_POLICY", "single")
    issued = download_tokens.issue_download(db, reload_user(), make_feed_item().id, now=NOW)
    payload = download_tokens.verify_download_token(issued.token, now=NOW)

    assert download_tokens.redeem(db, payload).redeemed_count == 1
    with pytest.raises(InvalidOrExpired, match="already used"):
        download_tokens.redeem(db, payload)


def test_invalid_policy_is_rejected(monkeypatch):
    monkeypatch.setenv("DOWNLOAD_TOKEN_POLICY", "sometimes")
    with pytest.raises(ValueError):
        download_tokens.token_policy()


def test_token_without_grant_is_invalid(db):
    token = jwt.encode({"expiresAt": NOW + 300, "jti": "unknown", "typ": "download", "fileName": "a.zip"},
                       download_tokens.token_secret(), algorithm="HS256")
    payload = download_tokens.verify_download_token(token, now=NOW)
    with pytest.raises(InvalidOrExpired):
        download_tokens.redeem(db, payload)

from koobings.auth.passwords import hash_password, verify_password


def test_hash_password_round_trip() -> None:
    hashed = hash_password('correct horse')

    assert hashed != 'correct horse'
    assert verify_password('correct horse', hashed) is True
    assert verify_password('wrong horse', hashed) is False


def test_verify_password_rejects_missing_or_unknown_hashes() -> None:
    assert verify_password('anything', None) is False
    assert verify_password('anything', '') is False
    assert verify_password('anything', 'plain-text-from-an-old-import') is False

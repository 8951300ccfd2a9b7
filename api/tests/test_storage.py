"""Object storage: uploads, listing, removal and signed URLs."""
import jwt
import pytest

from storage import InvalidObjectPath, ObjectExists, ObjectNotFound, ObjectStorage, SIGNED_URL_PREFIX


@pytest.fixture
def local_store(tmp_path):
    return ObjectStorage(tmp_path / "objects")


def test_upload_list_and_read(local_store):
    local_store.upload("task-photos", "7/start_1.jpg", b"abc")
    local_store.upload("task-photos", "7/end_2.jpg", b"defg")

    objects = local_store.list("task-photos", "7")

    assert [(o.name, o.size) for o in objects] == [("end_2.jpg", 4), ("start_1.jpg", 3)]
    assert local_store.read("task-photos", "7/start_1.jpg").read_bytes() == b"abc"


def test_upload_never_overwrites(local_store):
    local_store.upload("task-photos", "7/start_1.jpg", b"abc")

    with pytest.raises(ObjectExists):
        local_store.upload("task-photos", "7/start_1.jpg", b"other")


@pytest.mark.parametrize("path", ["../escape.jpg", "/etc/passwd", "7/../../x.jpg", ""])
def test_rejects_path_traversal(local_store, path):
    with pytest.raises(InvalidObjectPath):
        local_store.upload("task-photos", path, b"x")


def test_list_missing_folder_is_empty(local_store):
    assert local_store.list("task-photos", "404") == []


def test_remove_ignores_missing_and_prunes_folder(local_store):
    local_store.upload("task-photos", "9/start_1.jpg", b"a")

    removed = local_store.remove("task-photos", ["9/start_1.jpg", "9/ghost.jpg"])

    assert removed == 1
    assert not (local_store.root / "task-photos" / "9").exists()


def test_remove_with_bad_path_deletes_nothing(local_store):
    local_store.upload("task-photos", "3/start_1.jpg", b"a")

    with pytest.raises(InvalidObjectPath):
        local_store.remove("task-photos", ["3/start_1.jpg", "../outside.jpg"])

    assert len(local_store.list("task-photos", "3")) == 1


def test_signed_url_round_trip(local_store):
    local_store.upload("task-photos", "5/start_1.jpg", b"jpeg")

    url = local_store.create_signed_url("task-photos", "5/start_1.jpg", expires_in=60)

    assert url.startswith(SIGNED_URL_PREFIX)
    path = local_store.resolve_signed(url[len(SIGNED_URL_PREFIX):])
    assert path.read_bytes() == b"jpeg"


def test_signed_url_expired(local_store):
    local_store.upload("task-photos", "5/start_1.jpg", b"jpeg")
    url = local_store.create_signed_url("task-photos", "5/start_1.jpg", expires_in=-1)

    with pytest.raises(InvalidObjectPath):
        local_store.resolve_signed(url[len(SIGNED_URL_PREFIX):])


def test_signed_url_for_deleted_object(local_store):
    local_store.upload("task-photos", "5/start_1.jpg", b"jpeg")
    url = local_store.create_signed_url("task-photos", "5/start_1.jpg")
    local_store.remove("task-photos", ["5/start_1.jpg"])

    with pytest.raises(ObjectNotFound):
        local_store.resolve_signed(url[len(SIGNED_URL_PREFIX):])


def test_access_token_is_not_a_signed_url(local_store, admin_token):
    with pytest.raises(InvalidObjectPath):
        local_store.resolve_signed(admin_token)


def test_signed_endpoint_errors(client):
    from config import settings

    bogus = client.get(f"{SIGNED_URL_PREFIX}not-a-token")
    forged = jwt.encode({"type": "storage", "bucket": "task-photos", "path": "1/x.jpg"},
                        "wrong-secret-wrong-secret-wrong-secret", algorithm="HS256")
    missing = jwt.encode({"type": "storage", "bucket": "task-photos", "path": "1/missing.jpg"},
                         settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    assert bogus.status_code == 403
    assert client.get(f"{SIGNED_URL_PREFIX}{forged}").status_code == 403
    assert client.get(f"{SIGNED_URL_PREFIX}{missing}").status_code == 404

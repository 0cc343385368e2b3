"""
Tests for the image library and image attachments.
"""

import threading

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def upload(client, name="photo.png", data=PNG, content_type="image/png"):
    return client.post("/admin/images", files={"file": (name, data, content_type)})


def test_upload_image(client, admin, storage):
    response = upload(client, name="summer photo.png")
    assert response.status_code == 201
    image = response.json()

    assert image["key"].startswith("all-images/")
    assert image["key"].endswith("-summer_photo.png")
    assert image["url"] == f"https://storage.test/bucket/{image['key']}"
    assert image["original_name"] == "summer photo.png"
    assert image["size"] == len(PNG)
    assert storage.objects[image["key"]]["metadata"]["originalName"] == "summer photo.png"


def test_upload_rejects_invalid_files(client, admin, storage):
    wrong_type = upload(client, name="notes.txt", data=b"hello", content_type="text/plain")
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed."

    too_big = upload(client, data=b"\x00" * (10 * 1024 * 1024 + 1))
    assert too_big.status_code == 400
    assert storage.objects == {}


def test_upload_without_storage(client, admin):
    response = upload(client)
    assert response.status_code == 503
    assert response.json()["detail"] == "Object storage is not initialized"


def test_image_pagination(client, admin, storage):
    ids = [upload(client, name=f"img{i}.png").json()["id"] for i in range(5)]

    first = client.get("/admin/images/page", params={"page": 1, "limit": 2}).json()
    assert [image["id"] for image in first["images"]] == [ids[4], ids[3]]
    assert first["total_count"] == 5
    assert first["total_pages"] == 3
    assert first["has_next_page"] is True
    assert first["has_previous_page"] is False

    last = client.get("/admin/images/page", params={"page": 3, "limit": 2}).json()
    assert [image["id"] for image in last["images"]] == [ids[0]]
    assert last["has_next_page"] is False

    assert len(client.get("/admin/images").json()) == 5


def test_attach_and_delete_image(client, admin, storage):
    image = upload(client).json()
    category = client.post("/admin/categories", json={"name": "Shirts"}).json()
    product = client.post("/admin/products", json={"name": "Linen Shirt"}).json()

    assert client.put(f"/admin/categories/{category['id']}/image/{image['id']}").json() == {"success": True}
    assert client.put(f"/admin/products/{product['id']}/thumbnail/{image['id']}").json() == {"success": True}
    client.post(f"/admin/products/{product['id']}/images", json={"image_ids": [image["id"], image["id"]]})

    detail = client.get(f"/admin/images/{image['id']}").json()
    assert detail["category_ids"] == [category["id"]]
    assert detail["product_ids"] == [product["id"]]

    shown = client.get(f"/admin/products/{product['id']}").json()
    assert shown["thumbnail"]["id"] == image["id"]
    assert [i["id"] for i in shown["images"]] == [image["id"]]
    assert client.get(f"/admin/categories/{category['id']}").json()["image_url"] == image["url"]

    assert client.delete(f"/admin/images/{image['id']}").json() == {"success": True}
    assert storage.objects == {}
    assert client.get(f"/admin/images/{image['id']}").status_code == 404

    shown = client.get(f"/admin/products/{product['id']}").json()
    assert shown["thumbnail"] is None
    assert shown["images"] == []
    assert client.get(f"/admin/categories/{category['id']}").json()["image_id"] is None


def test_gallery_errors_and_removal(client, admin, storage):
    image = upload(client).json()
    product = client.post("/admin/products", json={"name": "Mug"}).json()

    missing = client.post(f"/admin/products/{product['id']}/images", json={"image_ids": [image["id"], 999]})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Some images not found"

    client.post(f"/admin/products/{product['id']}/images", json={"image_ids": [image["id"]]})
    client.delete(f"/admin/products/{product['id']}/images/{image['id']}")
    assert client.get(f"/admin/products/{product['id']}").json()["images"] == []


def test_storage_calls_run_off_the_event_loop(client, admin, storage):
    loop_thread = client.portal.call(_current_thread)
    image = upload(client).json()
    client.delete(f"/admin/images/{image['id']}")

    assert len(storage.call_threads) == 2
    assert loop_thread not in storage.call_threads


async def _current_thread():
    return threading.get_ident()

from mdsign.services.document_cache import DocumentCacheStore


async def create_folder(client, account, name, parent_id=None):
    response = await client.post(
        "/folders", json={"name": name, "parent_id": parent_id}, headers=account.headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_and_list(client, make_account):
    account = await make_account()
    root = await create_folder(client, account, "Contracts")
    await create_folder(client, account, "2026", parent_id=root["id"])

    everything = await client.get("/folders", headers=account.headers)
    roots = await client.get("/folders", params={"root": "true"}, headers=account.headers)
    children = await client.get(
        "/folders", params={"parent_id": root["id"]}, headers=account.headers
    )

    assert {f["name"] for f in everything.json()} == {"Contracts", "2026"}
    assert [f["name"] for f in roots.json()] == ["Contracts"]
    assert [f["name"] for f in children.json()] == ["2026"]


async def test_parent_must_belong_to_tenant(client, make_account):
    account = await make_account()
    other = await make_account()
    foreign = await create_folder(client, other, "Theirs")

    response = await client.post(
        "/folders", json={"name": "Mine", "parent_id": foreign["id"]}, headers=account.headers
    )

    assert response.status_code == 400


async def test_blank_name_rejected(client, make_account):
    account = await make_account()

    response = await client.post("/folders", json={"name": "   "}, headers=account.headers)

    assert response.status_code == 400


async def test_document_counts(client, make_account, add_cached_document):
    account = await make_account()
    folder = await create_folder(client, account, "Signed")
    await create_folder(client, account, "Sub", parent_id=folder["id"])
    await add_cached_document(account.tenant_id, folder_id=folder["id"])
    await add_cached_document(account.tenant_id, folder_id=folder["id"])

    listed = await client.get(
        "/folders", params={"root": "true", "include_document_count": "true"}, headers=account.headers
    )
    detail = await client.get(f"/folders/{folder['id']}", headers=account.headers)

    assert listed.json()[0]["document_count"] == 2
    assert detail.json()["document_count"] == 2
    assert detail.json()["subfolder_count"] == 1


async def test_tree(client, make_account):
    account = await make_account()
    a = await create_folder(client, account, "A")
    b = await create_folder(client, account, "B", parent_id=a["id"])
    await create_folder(client, account, "C", parent_id=b["id"])
    await create_folder(client, account, "D")

    response = await client.get("/folders/tree", headers=account.headers)

    tree = response.json()
    assert [n["name"] for n in tree] == ["A", "D"]
    assert tree[0]["children"][0]["name"] == "B"
    assert tree[0]["children"][0]["children"][0]["name"] == "C"


async def test_update_rejects_cycles(client, make_account):
    account = await make_account()
    a = await create_folder(client, account, "A")
    b = await create_folder(client, account, "B", parent_id=a["id"])
    c = await create_folder(client, account, "C", parent_id=b["id"])

    onto_self = await client.patch(
        f"/folders/{a['id']}", json={"parent_id": a["id"]}, headers=account.headers
    )
    onto_descendant = await client.patch(
        f"/folders/{a['id']}", json={"parent_id": c["id"]}, headers=account.headers
    )

    assert onto_self.status_code == 400
    assert onto_descendant.status_code == 400


async def test_update_moves_and_renames(client, make_account):
    account = await make_account()
    a = await create_folder(client, account, "A")
    b = await create_folder(client, account, "B", parent_id=a["id"])

    moved = await client.patch(
        f"/folders/{b['id']}", json={"parent_id": None, "color": "#00aa00"}, headers=account.headers
    )
    renamed = await client.patch(
        f"/folders/{a['id']}", json={"name": "Archive"}, headers=account.headers
    )

    assert moved.json()["parent_id"] is None
    assert moved.json()["color"] == "#00aa00"
    assert renamed.json()["name"] == "Archive"


async def test_delete_non_empty_requires_force(client, make_account, add_cached_document, db):
    account = await make_account()
    a = await create_folder(client, account, "A")
    b = await create_folder(client, account, "B", parent_id=a["id"])
    row = await add_cached_document(account.tenant_id, folder_id=b["id"])

    refused = await client.delete(f"/folders/{a['id']}", headers=account.headers)
    assert refused.status_code == 409

    forced = await client.delete(
        f"/folders/{a['id']}", params={"force": "true"}, headers=account.headers
    )
    assert forced.status_code == 204

    remaining = await client.get("/folders", headers=account.headers)
    assert remaining.json() == []

    cached = await DocumentCacheStore.get(db, account.tenant_id, row.provider_document_id)
    assert cached is not None
    assert cached.folder_id is None


async def test_delete_empty_folder(client, make_account):
    account = await make_account()
    folder = await create_folder(client, account, "Empty")

    response = await client.delete(f"/folders/{folder['id']}", headers=account.headers)

    assert response.status_code == 204


async def test_folders_are_tenant_scoped(client, make_account):
    account = await make_account()
    other = await make_account()
    folder = await create_folder(client, other, "Theirs")

    assert (await client.get(f"/folders/{folder['id']}", headers=account.headers)).status_code == 404
    assert (await client.delete(f"/folders/{folder['id']}", headers=account.headers)).status_code == 404
    assert (await client.get("/folders", headers=account.headers)).json() == []

async def create_organization(client, account, name="Filial Sul"):
    response = await client.post("/organizations", json={"name": name}, headers=account.headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_list_get(client, make_account):
    owner = await make_account(plan="IPE")
    organization = await create_organization(client, owner)

    listed = await client.get(
        "/organizations", params={"include_user_count": "true"}, headers=owner.headers
    )
    detail = await client.get(f"/organizations/{organization['id']}", headers=owner.headers)

    assert [o["name"] for o in listed.json()] == ["Filial Sul"]
    assert listed.json()[0]["user_count"] == 0
    assert detail.json()["user_count"] == 0


async def test_members_must_share_tenant(client, make_account):
    owner = await make_account(plan="IPE")
    colleague = await make_account(role="user", tenant_id=owner.tenant_id)
    stranger = await make_account(plan="IPE")
    organization = await create_organization(client, owner)
    base = f"/organizations/{organization['id']}/users"

    added = await client.post(base, json={"profile_id": colleague.profile_id}, headers=owner.headers)
    duplicate = await client.post(base, json={"profile_id": colleague.profile_id}, headers=owner.headers)
    foreign = await client.post(base, json={"profile_id": stranger.profile_id}, headers=owner.headers)

    assert added.status_code == 201
    assert added.json()["email"] == colleague.email
    assert duplicate.status_code == 409
    assert foreign.status_code == 404

    members = await client.get(base, headers=owner.headers)
    assert [m["profile_id"] for m in members.json()] == [colleague.profile_id]

    removed = await client.delete(f"{base}/{colleague.profile_id}", headers=owner.headers)
    assert removed.status_code == 204
    assert (await client.get(base, headers=owner.headers)).json() == []


async def test_update_and_delete(client, make_account):
    owner = await make_account(plan="IPE")
    colleague = await make_account(role="user", tenant_id=owner.tenant_id)
    organization = await create_organization(client, owner)
    await client.post(
        f"/organizations/{organization['id']}/users",
        json={"profile_id": colleague.profile_id},
        headers=owner.headers,
    )

    updated = await client.patch(
        f"/organizations/{organization['id']}",
        json={"name": "Filial Norte", "provider_organization_id": "prov-7"},
        headers=owner.headers,
    )
    assert updated.json()["name"] == "Filial Norte"
    assert updated.json()["provider_organization_id"] == "prov-7"

    deleted = await client.delete(f"/organizations/{organization['id']}", headers=owner.headers)
    assert deleted.status_code == 204
    gone = await client.get(f"/organizations/{organization['id']}", headers=owner.headers)
    assert gone.status_code == 404


async def test_changes_require_admin(client, make_account):
    owner = await make_account(plan="IPE")
    member = await make_account(role="user", tenant_id=owner.tenant_id)
    organization = await create_organization(client, owner)

    create = await client.post("/organizations", json={"name": "X"}, headers=member.headers)
    delete = await client.delete(f"/organizations/{organization['id']}", headers=member.headers)
    read = await client.get("/organizations", headers=member.headers)

    assert create.status_code == 403
    assert delete.status_code == 403
    assert read.status_code == 200


async def test_organizations_are_tenant_scoped(client, make_account):
    owner = await make_account(plan="IPE")
    other = await make_account(plan="IPE")
    organization = await create_organization(client, other)

    response = await client.get(f"/organizations/{organization['id']}", headers=owner.headers)

    assert response.status_code == 404
    assert (await client.get("/organizations", headers=owner.headers)).json() == []

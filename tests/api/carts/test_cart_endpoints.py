from models import CartItem


async def test_guest_cart_create_then_fetch(client):
    created = await client.post("/carts/guest", json={"guest_token": "guest-xyz"})
    fetched = await client.post("/carts/guest", json={"guest_token": "guest-xyz"})

    assert created.status_code == 201
    assert fetched.status_code == 200
    assert created.json()["id"] == fetched.json()["id"]
    assert created.json()["user_id"] is None


async def test_guest_token_required(client):
    response = await client.post("/carts/guest", json={"guest_token": "   "})

    assert response.status_code == 422


async def test_merge_after_login(client, session, customer, customer_headers, make_product):
    book = make_product(stock=10)
    guest = await client.post("/carts/guest", json={"guest_token": "guest-merge"})
    session.add(CartItem(cart_id=guest.json()["id"], product_id=book.id, quantity=2))
    session.commit()

    response = await client.post("/carts/merge", headers=customer_headers, json={"guest_token": "guest-merge"})

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == customer.id
    assert [(i["product_id"], i["quantity"]) for i in data["items"]] == [(book.id, 2)]

    me = await client.get("/carts/me", headers=customer_headers)
    assert me.json()["id"] == data["id"]


async def test_merge_over_stock_is_409(client, session, customer_headers, make_product):
    book = make_product(stock=1)
    guest = await client.post("/carts/guest", json={"guest_token": "guest-big"})
    session.add(CartItem(cart_id=guest.json()["id"], product_id=book.id, quantity=5))
    session.commit()

    response = await client.post("/carts/merge", headers=customer_headers, json={"guest_token": "guest-big"})

    assert response.status_code == 409


async def test_merge_requires_auth(client):
    response = await client.post("/carts/merge", json={"guest_token": "guest-merge"})

    assert response.status_code == 401


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "Healthy"}

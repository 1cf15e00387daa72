"""Logic-gate playground endpoints."""


def create(client, gate="not", hidden=0) -> dict:
    response = client.post("/api/networks", json={"gate": gate, "hidden_neurons": hidden})
    assert response.status_code == 200
    return response.json()


def test_create_defaults(client) -> None:
    body = create(client)
    assert body["gate"] == "not"
    assert body["input_count"] == 1
    assert body["output_labels"] == ["NOT"]
    assert body["input_values"] == [0]
    assert len(body["layers"]) == 1
    assert body["layers"][0][0]["weights"] == [0.0]


def test_unknown_gate_and_session(client) -> None:
    assert client.post("/api/networks", json={"gate": "nand"}).status_code == 400
    assert client.get("/api/networks/missing").status_code == 404


def test_solve_not_and_advance(client) -> None:
    network_id = create(client)["id"]

    challenge = client.get(f"/api/networks/{network_id}/challenge").json()
    assert challenge["solved"] is False
    assert client.post(f"/api/networks/{network_id}/challenge/next").status_code == 400

    response = client.put(f"/api/networks/{network_id}/neurons",
                          json={"layer": 0, "neuron": 0, "weights": [-1.0], "bias": 1.0})
    assert response.status_code == 200

    challenge = client.get(f"/api/networks/{network_id}/challenge").json()
    assert challenge["solved"] is True
    assert challenge["next_gate"] == "or"
    assert [row["bits"] for row in challenge["rows"]] == [[1], [0]]

    body = client.post(f"/api/networks/{network_id}/challenge/next").json()
    assert body["gate"] == "or"
    assert body["input_count"] == 2


def test_evaluate_custom_and_stored_inputs(client) -> None:
    network_id = create(client, gate="and")["id"]
    client.put(f"/api/networks/{network_id}/weights", json={"layer": 0, "neuron": 0, "weight": 0, "value": 1})
    client.put(f"/api/networks/{network_id}/weights", json={"layer": 0, "neuron": 0, "weight": 1, "value": 1})
    client.put(f"/api/networks/{network_id}/bias", json={"layer": 0, "neuron": 0, "value": -1.5})

    body = client.post(f"/api/networks/{network_id}/evaluate", json={"inputs": [1, 1]}).json()
    assert body["outputs"] == [0.5]
    assert body["bits"] == [1]
    assert body["expected"] == [1]

    client.put(f"/api/networks/{network_id}/inputs", json={"values": [0, 1]})
    body = client.post(f"/api/networks/{network_id}/evaluate").json()
    assert body["inputs"] == [0.0, 1.0]
    assert body["bits"] == [0]


def test_input_length_mismatch(client) -> None:
    network_id = create(client, gate="xor")["id"]
    response = client.post(f"/api/networks/{network_id}/evaluate", json={"inputs": [1]})
    assert response.status_code == 400
    assert client.put(f"/api/networks/{network_id}/inputs", json={"values": [1]}).status_code == 400


def test_bad_edits(client) -> None:
    network_id = create(client)["id"]
    response = client.put(f"/api/networks/{network_id}/weights",
                          json={"layer": 3, "neuron": 0, "weight": 0, "value": 1})
    assert response.status_code == 400
    response = client.put(f"/api/networks/{network_id}/neurons",
                          json={"layer": 0, "neuron": 0, "weights": [1, 2], "bias": 0})
    assert response.status_code == 400


def test_hidden_layer_resize_keeps_weights(client) -> None:
    network_id = create(client, gate="xor", hidden=2)["id"]
    client.put(f"/api/networks/{network_id}/neurons",
               json={"layer": 0, "neuron": 1, "weights": [1, 1], "bias": -1})

    body = client.put(f"/api/networks/{network_id}/hidden", json={"hidden_neurons": 0}).json()
    assert [len(layer) for layer in body["layers"]] == [1]

    body = client.put(f"/api/networks/{network_id}/hidden", json={"hidden_neurons": 2}).json()
    assert body["hidden_neurons"] == 2
    assert body["layers"][0][1]["weights"] == [1.0, 1.0]
    assert body["layers"][0][1]["bias"] == -1.0

    body = client.post(f"/api/networks/{network_id}/reset").json()
    assert body["layers"][0][1]["weights"] == [0.0, 0.0]


def test_full_adder_is_free_play(client) -> None:
    network_id = create(client, gate="full-adder", hidden=3)["id"]
    challenge = client.get(f"/api/networks/{network_id}/challenge").json()
    assert challenge["labels"] == ["SUM", "CARRY"]
    assert len(challenge["rows"]) == 8
    assert challenge["rows"][7]["expected"] == [1, 1]
    assert challenge["next_gate"] is None

import json

import app as app_module


def test_ping_endpoint(client):
    response = client.get('/ping')
    assert response.status_code == 200
    assert json.loads(response.data)['ok'] is True


def test_healthz_endpoint(client):
    """Test /healthz returns correct structure."""
    response = client.get('/healthz')
    assert response.status_code == 200

    data = json.loads(response.data)
    assert data['ok'] is True
    assert data['data_available'] is True
    assert data['trained_columns'] == []


def test_metrics_endpoint(client):
    client.get('/ping')
    response = client.get('/metrics')
    assert response.status_code == 200

    data = json.loads(response.data)
    assert data['requests_total'] >= 1
    assert 'avg_latency_ms' in data
    assert data['errors_total'] == 0


def test_presets_endpoint(client):
    data = json.loads(client.get('/presets').data)
    assert data['sensors_to_columns'] == {"1": 7, "2": 10, "3": 13}


def test_inspect_default_file(client):
    response = client.post('/dataset/inspect', json={"batch_size": 2, "window_length": 5})
    assert response.status_code == 200

    data = json.loads(response.data)
    assert data['file_records'] == 20
    assert data['total_examples'] == 2
    assert data['input_shape'] == [2, 6, 5]
    assert data['has_next'] is True
    assert data['issues'] == []


def test_inspect_reports_clamped_configuration(client):
    data = json.loads(client.post('/dataset/inspect', json={"window_length": 0, "columns": -1}).data)
    assert data['window_length'] == 19
    assert data['columns'] == 7
    assert {i['field'] for i in data['issues']} == {"window_length", "columns"}


def test_inspect_missing_file(client, tmp_path):
    response = client.post('/dataset/inspect', json={"path": str(tmp_path / "missing.csv")})
    assert response.status_code == 404
    assert json.loads(response.data)['ok'] is False


def test_inspect_bad_configuration(client):
    response = client.post('/dataset/inspect', json={"batch_size": "two"})
    assert response.status_code == 400


def test_preview_returns_normalized_batch(client):
    response = client.post('/dataset/preview', json={"batch_size": 2, "window_length": 5, "index": 1})
    assert response.status_code == 200

    data = json.loads(response.data)
    assert data['input_shape'] == [2, 6, 5]
    assert data['label_shape'] == [2, 1, 5]
    assert data['cursor'] == 2
    assert data['labels'][1][0][4] == 9.5


def test_preview_past_the_end(client):
    response = client.post('/dataset/preview', json={"batch_size": 2, "window_length": 5, "index": 2})
    assert response.status_code == 404


def test_preview_bad_row(client, make_csv):
    path = make_csv(name="bad.csv", bad=(2, 3, "n/a"))
    response = client.post('/dataset/preview', json={"path": path, "window_length": 5})
    assert response.status_code == 422

    data = json.loads(response.data)
    assert data['line'] == 4
    assert data['column'] == 3


def test_train_validates_the_form(client):
    response = client.post('/train', json={"crop": "", "soil": "clay", "depth1": "abc"})
    assert response.status_code == 400

    errors = json.loads(response.data)['errors']
    assert "Crop Type Field - No crop type was entered." in errors
    assert "A minimum of 1 sensor depth must be entered." in errors


def test_train_caches_model(client, app, monkeypatch, stub_model):
    calls = []

    def fake_train(path, columns, window_length, epochs):
        calls.append((path, columns, window_length, epochs))
        return stub_model, {"window_length": window_length, "batches": 3, "mse": 0.1}

    monkeypatch.setattr(app_module, "train_model", fake_train)
    response = client.post('/train', json={"crop": "corn", "soil": "clay", "depth1": 6, "depth2": 12})
    assert response.status_code == 200
    assert json.loads(response.data)['columns'] == 10
    assert calls == [(app.config['DATA_PATH'], 10, 5, 1)]
    assert app.config['_model_cache'][10]['model'] is stub_model


def test_recommend_requires_trained_model(client):
    response = client.post('/recommend', json={"crop": "corn", "soil": "clay", "depth1": 6})
    assert response.status_code == 400


def test_recommend_writes_report(client, app, stub_model, tmp_path):
    app.config['_model_cache'][7] = {"model": stub_model, "window_length": 5, "trained_on": "x"}
    response = client.post('/recommend', json={"crop": "corn", "soil": "clay", "depth1": 6})
    assert response.status_code == 200

    data = json.loads(response.data)
    assert data['amount'] == "0.75"
    assert data['irrigate'] is True
    assert data['report_path'].startswith(str(tmp_path))
    with open(data['report_path'], encoding="utf-8") as f:
        assert "Crop Type: corn" in f.read()


def test_recommend_on_missing_file(client, app, stub_model, tmp_path):
    app.config['_model_cache'][7] = {"model": stub_model, "window_length": 5, "trained_on": "x"}
    response = client.post('/recommend', json={"crop": "corn", "soil": "clay", "depth1": 6,
                                               "path": str(tmp_path / "gone.csv")})
    assert response.status_code == 404
    assert json.loads(client.get('/metrics').data)['errors_total'] == 1


def test_preview_undecodable_row(client, make_csv):
    path = make_csv(name="latin.csv", bad=(3, 2, "XX"))
    with open(path, "rb") as f:
        raw = f.read()
    with open(path, "wb") as f:
        f.write(raw.replace(b"XX", b"\xff\xfe"))

    response = client.post('/dataset/preview', json={"path": path, "window_length": 5})
    assert response.status_code == 422

    data = json.loads(response.data)
    assert data['line'] == 5
    assert data['column'] == 2

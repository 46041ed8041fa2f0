import pytest
from fastapi.testclient import TestClient

from src.megapredict.api import app
from src.megapredict.errors import PriceUnavailable
from src.megapredict.repository import RoundRepository
from src.megapredict.round_service import RoundService
from src.megapredict.rounds import RoundManager
from src.megapredict.runtime import install_round_service

client = TestClient(app)


class FakePriceSource:
    def __init__(self, price: float | None) -> None:
        self.price = price

    async def get_current_price(self) -> float:
        if self.price is None:
            raise PriceUnavailable("feed down")
        return self.price


class AlwaysUp:
    def random(self) -> float:
        return 0.9


@pytest.fixture
def price_source(tmp_path):
    source = FakePriceSource(2000.0)
    service = RoundService(
        manager=RoundManager(clock=lambda: 1_771_416_450.0, rng=AlwaysUp()),
        price_source=source,
        repository=RoundRepository(db_path=str(tmp_path / "rounds.sqlite3")),
    )
    install_round_service(service)
    yield source
    install_round_service(None)


def test_healthz() -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_price_returns_current_price(price_source: FakePriceSource) -> None:
    response = client.get("/api/price")

    assert response.status_code == 200
    assert response.json()["price"] == 2000.0


def test_price_failure_is_503(price_source: FakePriceSource) -> None:
    price_source.price = None

    response = client.get("/api/price")

    assert response.status_code == 503


def test_round_snapshot_before_first_round(price_source: FakePriceSource) -> None:
    response = client.get("/api/round")

    assert response.status_code == 200
    body = response.json()
    assert body["round_number"] == 0
    assert body["state"] == "EMPTY"
    assert body["start_price"] is None
    assert body["current_price"] == 2000.0
    assert body["seconds_left"] == 0
    # 2026-02-18T12:07:30Z
    assert body["next_round_time"] == "2026-02-18T12:15:00+00:00"


def test_start_then_resolve_round(price_source: FakePriceSource) -> None:
    start = client.post("/api/start-round")

    assert start.status_code == 200
    round_body = start.json()["round"]
    assert round_body["round_number"] == 1
    assert round_body["start_price"] == 2000.0
    assert round_body["prediction"] == "UP"

    snapshot = client.get("/api/round").json()
    assert snapshot["state"] == "ACTIVE"
    assert snapshot["seconds_left"] == 900

    price_source.price = 2100.0
    resolve = client.post("/api/resolve-round")

    assert resolve.status_code == 200
    body = resolve.json()
    assert body["success"] is True
    assert body["price_change"] == "100.00"
    assert body["actual_direction"] == "UP"
    assert body["prediction_correct"] is True

    again = client.post("/api/resolve-round")
    assert again.status_code == 409

    stored = client.get("/api/rounds/1").json()
    assert stored["resolved"] is True
    assert stored["end_price"] == 2100.0

    stats = client.get("/api/stats").json()
    assert stats["resolved_rounds"] == 1
    assert stats["accuracy_pct"] == 100.0


def test_resolve_without_round_is_409(price_source: FakePriceSource) -> None:
    response = client.post("/api/resolve-round")

    assert response.status_code == 409


def test_resolve_named_round_must_be_current(price_source: FakePriceSource) -> None:
    client.post("/api/start-round")
    client.post("/api/start-round")

    stale = client.post("/api/resolve-round", json={"round_number": 1})
    current = client.post("/api/resolve-round", json={"round_number": 2})

    assert stale.status_code == 409
    assert current.status_code == 200
    assert current.json()["round_number"] == 2


def test_start_round_price_failure_keeps_previous_round(price_source: FakePriceSource) -> None:
    client.post("/api/start-round")
    price_source.price = None

    response = client.post("/api/start-round")

    assert response.status_code == 503
    price_source.price = 2000.0
    assert client.get("/api/round").json()["round_number"] == 1


def test_list_rounds_and_missing_round(price_source: FakePriceSource) -> None:
    for _ in range(3):
        client.post("/api/start-round")

    items = client.get("/api/rounds", params={"limit": 2}).json()["items"]

    assert [item["round_number"] for item in items] == [3, 2]
    assert client.get("/api/rounds/99").status_code == 404


def test_cron_secret_guards_mutations(tmp_path) -> None:
    service = RoundService(
        manager=RoundManager(rng=AlwaysUp()),
        price_source=FakePriceSource(2000.0),
        repository=RoundRepository(db_path=str(tmp_path / "rounds.sqlite3")),
    )
    install_round_service(service, cron_secret="s3cret")
    try:
        denied = client.post("/api/start-round")
        wrong = client.post("/api/start-round", headers={"Authorization": "Bearer nope"})
        allowed = client.post("/api/start-round", headers={"Authorization": "Bearer s3cret"})
    finally:
        install_round_service(None)

    assert denied.status_code == 401
    assert wrong.status_code == 401
    assert allowed.status_code == 200


def test_cron_secret_enforced_on_first_request_after_startup(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("src.megapredict.config.load_dotenv", lambda: None)
    for key in ("PRICE_STREAM_ENABLED", "RELAY_ENABLED", "TEST_MODE", "HISTORY_CAPACITY"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    monkeypatch.setenv("ROUNDS_DB_PATH", str(tmp_path / "rounds.sqlite3"))
    install_round_service(None)
    try:
        start = client.post("/api/start-round")
        resolve = client.post("/api/resolve-round", headers={"Authorization": "Bearer nope"})
    finally:
        install_round_service(None)

    assert start.status_code == 401
    assert resolve.status_code == 401

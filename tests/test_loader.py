import pytest

from resource_loader.names import ClassificationError
from resource_loader.transport import TransportError

from conftest import Recorder

MODULES = "/json/modules.json"


def test_concurrent_gets_share_one_transport_call(env, loader, transport, metrics):
    recorders = [Recorder() for _ in range(3)]
    for rec in recorders:
        loader.get("modules", rec)

    assert transport.calls == [MODULES]

    transport.succeed(MODULES, {"modules": ["edward"]})
    env.run()

    for rec in recorders:
        assert rec.calls == [(None, {"modules": ["edward"]})]
    assert metrics.misses == 1
    assert metrics.joins == 2


def test_cached_payload_survives_new_transport_data(env, loader, transport):
    first = Recorder()
    loader.get("modules", first)
    transport.succeed(MODULES, "v1")
    env.run()

    second = Recorder()
    loader.get("modules", second)
    # ответ из кеша приходит асинхронно
    assert second.calls == []
    env.run()

    assert second.calls == [(None, "v1")]
    assert transport.calls == [MODULES]
    assert loader.store.get_entry(MODULES).value == "v1"


def test_invalid_name_raises_synchronously(loader, transport, metrics):
    rec = Recorder()
    with pytest.raises(ClassificationError) as exc_info:
        loader.get("bogus", rec)

    assert exc_info.value.name == "bogus"
    assert rec.calls == []
    assert transport.calls == []
    assert metrics.classification_errors == 1


def test_failure_is_not_cached(env, loader, transport, metrics):
    rec = Recorder()
    loader.get("media-tmpl", rec)
    transport.fail("/html/media.html")
    env.run()

    error, data = rec.calls[0]
    assert isinstance(error, TransportError)
    assert error.locator == "/html/media.html"
    assert data is None
    assert "/html/media.html" not in loader.store

    retry = Recorder()
    loader.get("media-tmpl", retry)
    assert transport.calls == ["/html/media.html", "/html/media.html"]

    transport.succeed("/html/media.html", "<div/>")
    env.run()
    assert retry.calls == [(None, "<div/>")]
    assert metrics.failures == 1


def test_all_waiters_receive_the_failure(env, loader, transport):
    first, second = Recorder(), Recorder()
    loader.get("file", first)
    loader.get("file", second)
    transport.fail("/html/fs/file.html")
    env.run()

    assert isinstance(first.errors[0], TransportError)
    assert first.errors[0] is second.errors[0]


def test_set_seeds_cache_without_transport(env, loader, transport):
    done = Recorder()
    loader.set("ext", {"ext": 1}, done)
    assert done.calls == [(None, None)]

    rec = Recorder()
    loader.get("ext", rec)
    env.run()

    assert rec.calls == [(None, {"ext": 1})]
    assert transport.calls == []


def test_set_during_pending_keeps_first_write(env, loader, transport):
    rec = Recorder()
    loader.get("modules", rec)
    loader.set("modules", "seed", Recorder())

    transport.succeed(MODULES, "fetched")
    env.run()

    # ожидающий получает ответ транспорта, запись остаётся первой
    assert rec.calls == [(None, "fetched")]
    assert loader.store.get_entry(MODULES).value == "seed"


def test_set_unknown_name_raises(loader):
    done = Recorder()
    with pytest.raises(ClassificationError):
        loader.set("bogus", {}, done)
    assert done.calls == []
    assert len(loader) == 0


def test_callback_must_be_callable(loader, transport):
    with pytest.raises(TypeError):
        loader.get("modules", None)
    with pytest.raises(TypeError):
        loader.set("modules", {}, "not callable")
    assert transport.calls == []


def test_get_is_chainable(env, loader, transport):
    a, b = Recorder(), Recorder()
    loader.get("file", a).get("path", b)
    assert transport.calls == ["/html/fs/file.html", "/html/fs/path.html"]


def test_request_event_for_processes(env, loader, transport):
    results = []

    def proc():
        data = yield loader.request("link")
        results.append(data)
        try:
            yield loader.request("pathLink")
        except TransportError as exc:
            results.append(exc.locator)

    env.process(proc())
    env.run()
    transport.succeed("/html/fs/link.html", "<a/>")
    env.run()
    transport.fail("/html/fs/pathLink.html")
    env.run()

    assert results == ["<a/>", "/html/fs/pathLink.html"]


def test_cache_call_metrics(env, loader, transport, metrics):
    loader.get("modules", Recorder())
    loader.get("modules", Recorder())
    transport.succeed(MODULES, {})
    env.run()
    loader.get("modules", Recorder())
    env.run()

    types = [c["type"] for c in metrics.cache_calls]
    assert sorted(types) == ["hit", "join", "miss"]
    assert metrics.summary()["hit_rate"] == pytest.approx(1 / 3)


def test_transport_error_survives_process_boundary(env, loader, transport):
    caught = []

    def proc():
        try:
            yield loader.request("ext")
        except TransportError as exc:
            caught.append(exc)

    env.process(proc())
    env.run()
    transport.events["/json/ext.json"][-1].fail(TransportError("/json/ext.json", "timeout"))
    env.run()

    assert caught[0].locator == "/json/ext.json"
    assert caught[0].reason == "timeout"
    assert str(caught[0]) == "/json/ext.json: timeout"


def test_synchronous_fetch_error_does_not_block_retry(env, loader, transport):
    fetch = transport.fetch
    attempts = []

    def flaky_fetch(locator):
        attempts.append(locator)
        if len(attempts) == 1:
            raise TransportError(locator, "connection refused")
        return fetch(locator)

    transport.fetch = flaky_fetch

    first = Recorder()
    with pytest.raises(TransportError):
        loader.get("modules", first)
    assert loader.store.get_pending(MODULES) is None

    retry = Recorder()
    loader.get("modules", retry)
    assert attempts == [MODULES, MODULES]

    transport.succeed(MODULES, "v")
    env.run()
    assert retry.calls == [(None, "v")]
    assert first.calls == []


def test_raising_callback_does_not_starve_other_waiters(env, loader, transport):
    def broken(error, data=None):
        raise RuntimeError("callback bug")

    good = Recorder()
    loader.get("modules", broken)
    loader.get("modules", good)
    transport.succeed(MODULES, "v")

    with pytest.raises(RuntimeError):
        env.run()
    env.run()

    assert good.calls == [(None, "v")]


def test_set_rejects_names_outside_known_tables(loader, metrics):
    with pytest.raises(ClassificationError) as exc_info:
        loader.set("config.json", {}, Recorder())
    assert exc_info.value.name == "config.json"
    assert metrics.classification_errors == 1

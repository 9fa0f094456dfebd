import pytest

from resource_loader.names import ClassificationError
from resource_loader.transport import TransportError

from conftest import Recorder


def test_results_follow_input_order(env, loader, transport):
    rec = Recorder()
    loader.get(["modules", "file"], rec)
    env.run()
    assert transport.calls == ["/json/modules.json", "/html/fs/file.html"]

    # второй завершается раньше первого
    transport.succeed("/html/fs/file.html", "B")
    env.run()
    assert rec.calls == []

    transport.succeed("/json/modules.json", "A")
    env.run()
    assert rec.calls == [(None, ["A", "B"])]


def test_first_error_in_input_order(env, loader, transport, metrics):
    rec = Recorder()
    loader.get(["modules", "file", "ext"], rec)
    env.run()

    transport.fail("/json/ext.json")
    env.run()
    transport.fail("/json/modules.json")
    env.run()
    transport.succeed("/html/fs/file.html", "<b/>")
    env.run()

    assert len(rec.calls) == 1
    error, data = rec.calls[0]
    assert isinstance(error, TransportError)
    assert error.locator == "/json/modules.json"
    assert error.reason == "not found"
    assert data is None
    # успешная единица всё равно заполнила кеш
    assert loader.store.get_entry("/html/fs/file.html").value == "<b/>"
    assert metrics.batches[0]["ok"] is False


def test_invalid_name_rejects_whole_batch(env, loader, transport):
    rec = Recorder()
    with pytest.raises(ClassificationError):
        loader.get(["modules", "bogus"], rec)
    env.run()

    assert transport.calls == []
    assert rec.calls == []


def test_empty_batch(env, loader):
    rec = Recorder()
    loader.get([], rec)
    env.run()
    assert rec.calls == [(None, [])]


def test_batch_shares_pending_operations(env, loader, transport, reader):
    rec = Recorder()
    loader.get(("config", "modules", "modules"), rec)
    env.run()

    assert transport.calls == ["/json/modules.json"]
    assert len(reader.events) == 1

    reader.events[0].succeed({"localStorage": True})
    transport.succeed("/json/modules.json", {"m": 1})
    env.run()

    assert rec.calls == [(None, [{"localStorage": True}, {"m": 1}, {"m": 1}])]


def test_batch_as_event(env, loader, transport):
    results = []

    def proc():
        results.append((yield loader.request(["path", "link"])))

    env.process(proc())
    env.run()
    transport.succeed("/html/fs/path.html", "p")
    transport.succeed("/html/fs/link.html", "l")
    env.run()

    assert results == [["p", "l"]]

from commhub.__main__ import main


def test_main_invokes_uvicorn(monkeypatch):
    called = {}

    def fake_run(app, *args, host, port, reload, **kwargs):
        called["app"] = app
        called["host"] = host
        called["port"] = port
        called["reload"] = reload

    monkeypatch.setattr("commhub.__main__.uvicorn.run", fake_run)

    assert main(["--host", "127.0.0.1", "--port", "9001", "--reload"]) == 0
    assert called == {
        "app": "commhub.app:create_app",
        "host": "127.0.0.1",
        "port": 9001,
        "reload": True,
    }

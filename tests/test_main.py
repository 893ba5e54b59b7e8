from unittest.mock import patch

from abreadout.__main__ import main


class TestRunner:
    def test_main_serves_app_with_settings(self, monkeypatch):
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("ENVIRONMENT", "production")

        with patch("abreadout.__main__.uvicorn.run") as run:
            main()

        args, kwargs = run.call_args
        assert args == ("abreadout.main:app",)
        assert kwargs["port"] == 9001
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["reload"] is False
        assert kwargs["log_level"] == "info"

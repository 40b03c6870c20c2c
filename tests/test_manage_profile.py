"""Record administration CLI test cases."""
import json
import pytest
from framework.exceptions.handler import BusinessException
from apps.profiles.scripts import manage_profile
from conftest import OWNER_ORCID


class TestParser:

    def test_show(self):
        args = manage_profile.build_parser().parse_args(["show", OWNER_ORCID])
        assert args.command == "show"
        assert args.orcid == OWNER_ORCID

    def test_create_unclaimed(self):
        args = manage_profile.build_parser().parse_args(
            ["create-unclaimed", "--email", "a@example.org", "--given-names", "Ada"]
        )
        assert args.email == "a@example.org"
        assert args.given_names == "Ada"
        assert args.family_name is None

    def test_create_unclaimed_requires_email(self):
        with pytest.raises(SystemExit):
            manage_profile.build_parser().parse_args(["create-unclaimed", "--given-names", "Ada"])

    def test_init_db(self):
        assert manage_profile.build_parser().parse_args(["init-db"]).command == "init-db"


class TestMain:

    @pytest.fixture(autouse=True)
    def quiet_logging(self, monkeypatch):
        monkeypatch.setattr(manage_profile.LogConfig, "setup_cli_logging", lambda *args, **kwargs: None)

    def test_success_prints_json(self, monkeypatch, capsys):
        async def fake_run(args):
            return {"orcid": OWNER_ORCID, "claimed": False}

        monkeypatch.setattr(manage_profile, "run", fake_run)
        assert manage_profile.main(["show", OWNER_ORCID]) == 0
        assert json.loads(capsys.readouterr().out) == {"orcid": OWNER_ORCID, "claimed": False}

    def test_business_error_exit_code(self, monkeypatch, capsys):
        async def fake_run(args):
            raise BusinessException(f"Record {OWNER_ORCID} not found", code=404)

        monkeypatch.setattr(manage_profile, "run", fake_run)
        assert manage_profile.main(["show", OWNER_ORCID]) == 1
        assert json.loads(capsys.readouterr().err)["code"] == 404

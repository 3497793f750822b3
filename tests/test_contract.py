"""Tests for the request/response contract."""

import json

import pytest
from pydantic import ValidationError

from pipe_status.models import Request, Response, ServerError
from pipe_status.status import RunProgress, Status, StatusState


class TestRequest:
    def test_json_round_trip(self, stage):
        request = Request(stage=stage, big_disk="/big", run_number_list=["1", "2"])

        assert Request.from_json(request.to_json()) == request

    def test_big_disk_defaults_to_none(self, stage):
        data = json.loads(Request(stage=stage).to_json())

        assert data["big_disk"] is None
        assert data["run_number_list"] == []
        assert data["stage"]["label"] == "co_reg"

    def test_immutable(self, stage):
        request = Request(stage=stage)

        with pytest.raises(ValidationError):
            request.big_disk = "/other"

    def test_unknown_fields_rejected(self, stage):
        text = Request(stage=stage).to_json()[:-1] + ', "extra": 1}'

        with pytest.raises(ValidationError):
            Request.from_json(text)


class TestResponse:
    def test_success_is_externally_tagged(self):
        status = Status(label="s", state=StatusState.COMPLETE, progress=1.0)
        data = json.loads(Response.ok(status).to_json())

        assert list(data) == ["Success"]
        assert data["Success"]["state"] == "Complete"

    @pytest.mark.parametrize("error", list(ServerError))
    def test_error_round_trip(self, error):
        response = Response.fail(error)

        assert response.to_json() == json.dumps({"Error": error.value}).replace(
            " ", ""
        )
        assert Response.from_json(response.to_json()) == response

    def test_success_round_trip(self):
        status = Status.from_runs(
            "s", [RunProgress(run_number="1", found=0, expected=3)], host="h1"
        )
        response = Response.ok(status)

        assert Response.from_json(response.to_json()) == response

    @pytest.mark.parametrize(
        "text",
        [
            "{}",
            '{"Error": "RequestParse", "Success": null, "Other": 1}',
            '{"Error": "NoSuchError"}',
            "[]",
        ],
    )
    def test_invalid_documents(self, text):
        with pytest.raises(ValidationError):
            Response.from_json(text)

    def test_requires_exactly_one_variant(self):
        status = Status(label="s", state=StatusState.COMPLETE, progress=1.0)

        with pytest.raises(ValidationError):
            Response(success=status, error=ServerError.REQUEST_PARSE)


class TestStatus:
    @pytest.mark.parametrize(
        "found, state",
        [
            ((0, 0), StatusState.NOT_STARTED),
            ((1, 0), StatusState.IN_PROGRESS),
            ((2, 2), StatusState.COMPLETE),
        ],
    )
    def test_state_from_runs(self, found, state):
        runs = [
            RunProgress(run_number=str(i), found=n, expected=2)
            for i, n in enumerate(found)
        ]

        assert Status.from_runs("s", runs).state == state

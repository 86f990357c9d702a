"""Tests for ExampleClientAdapter (template/reference adapter)."""

import json

from docflow.ai.example_client_adapter import ExampleClientAdapter


class TestExampleClientAdapter:
    def test_returns_text(self) -> None:
        adapter = ExampleClientAdapter()
        result = adapter.generate(model="any", prompt="summarize", temperature=0.0)
        assert result == ExampleClientAdapter.DEFAULT_TEXT

    def test_returns_json_when_asked(self) -> None:
        adapter = ExampleClientAdapter()
        result = adapter.generate(model="any", prompt="quiz", temperature=0.0, json_response=True)
        data = json.loads(result)
        assert data["quiz"] == []
        assert data["suggestions"] == []

    def test_ignores_input_parameters(self) -> None:
        adapter = ExampleClientAdapter()
        r1 = adapter.generate(model="a", prompt="p1", temperature=0.0)
        r2 = adapter.generate(model="b", prompt="p2", temperature=1.0)
        assert r1 == r2

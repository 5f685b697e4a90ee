from pathlib import Path

import pytest

from route_scribe.discovery.document import is_openapi_document, parse_openapi

FIXTURES = Path(__file__).parent / "fixtures"


class TestIsOpenApiDocument:
    def test_detects_openapi_and_swagger(self):
        assert is_openapi_document({"openapi": "3.0.0"})
        assert is_openapi_document({"swagger": "2.0"})

    def test_rejects_other_data(self):
        assert not is_openapi_document({"info": {}})
        assert not is_openapi_document(["openapi"])

    def test_parse_rejects_non_openapi_file(self, tmp_path):
        f = tmp_path / "doc.yaml"
        f.write_text("name: not an api\n")
        with pytest.raises(ValueError):
            parse_openapi(f)


class TestOpenApiParser:
    def test_parse_petstore_routes_count(self):
        routes = parse_openapi(FIXTURES / "petstore.yaml")
        assert len(routes) == 3
        assert all(r.source == "manual" for r in routes)

    def test_parse_get_pets(self):
        routes = parse_openapi(FIXTURES / "petstore.yaml")
        get_pets = [r for r in routes if r.key == ("get", "/pets")][0]
        assert get_pets.summary == "List all pets"
        assert get_pets.tags == ["pets"]
        # header parameters are not modelled
        assert len(get_pets.parameters) == 1
        assert get_pets.parameters[0].name == "limit"
        assert get_pets.parameters[0].required is False
        assert get_pets.parameters[0].fragment == {"type": "integer", "maximum": 100}
        assert get_pets.responses["200"]["content"]["application/json"]["schema"]["type"] == "array"

    def test_parse_post_pets_has_body(self):
        routes = parse_openapi(FIXTURES / "petstore.yaml")
        post_pets = [r for r in routes if r.method == "post"][0]
        schema = post_pets.request_body["content"]["application/json"]["schema"]
        assert "name" in schema["properties"]
        assert post_pets.responses == {"201": {"description": "Null response"}}

    def test_parse_path_level_param(self):
        routes = parse_openapi(FIXTURES / "petstore.yaml")
        get_pet = [r for r in routes if "{petId}" in r.path][0]
        assert get_pet.parameters[0].location == "path"
        assert get_pet.parameters[0].required is True
        assert get_pet.deprecated is True

    def test_parse_swagger2_json(self):
        [route] = parse_openapi(FIXTURES / "swagger2.json")
        assert route.key == ("put", "/users/{id}")
        assert route.parameters[0].fragment == {"type": "integer"}
        assert route.request_body == {"type": "object", "properties": {"name": {"type": "string"}}}
        assert route.responses["200"]["content"] == {"application/json": {"schema": {"type": "object"}}}

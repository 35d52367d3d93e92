"""Tests for fleetrun.hosts: inventory loading, target resolution and filters."""

from __future__ import annotations

import io
import json

import pytest

from fleetrun.hosts import (
    HostDescriptor,
    HostResolutionError,
    filter_hosts,
    format_tags,
    load_inventory,
    parse_filter,
    read_host_ids,
    resolve_targets,
)


class TestLoadInventory:

    def test_load(self, inventory_file):
        hosts = load_inventory(inventory_file)

        assert [h.id for h in hosts] == ["web-1", "web-2", "db-1", "broken-1"]
        web = hosts[0]
        assert web.private_ip_address == "10.0.0.5"
        assert web.public_ip_address == "203.0.113.5"
        assert web.tags == {"role": "web", "env": "prod"}
        assert hosts[1].public_ip_address is None
        assert hosts[2].tags["backup"] is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(HostResolutionError, match="not found"):
            load_inventory(tmp_path / "nope.yaml")

    def test_no_hosts_list(self, tmp_path):
        path = tmp_path / "inv.yaml"
        path.write_text("machines: []\n")
        with pytest.raises(HostResolutionError, match="hosts"):
            load_inventory(path)

    def test_entry_without_id(self, tmp_path):
        path = tmp_path / "inv.yaml"
        path.write_text("hosts:\n  - private_ip_address: 10.0.0.1\n")
        with pytest.raises(HostResolutionError, match="id"):
            load_inventory(path)


class TestResolveTargets:

    def test_keeps_requested_order(self, inventory):
        targets = resolve_targets(inventory, ["db-1", "web-1"])
        assert [t.id for t in targets] == ["db-1", "web-1"]

    def test_duplicates_kept(self, inventory):
        targets = resolve_targets(inventory, ["web-1", "web-1"])
        assert [t.id for t in targets] == ["web-1", "web-1"]

    def test_unknown_ids(self, inventory):
        with pytest.raises(HostResolutionError) as exc_info:
            resolve_targets(inventory, ["web-1", "ghost", "phantom"])
        assert "ghost, phantom" in str(exc_info.value)


class TestReadHostIds:

    def test_plain_text(self):
        assert read_host_ids(io.StringIO("web-1 web-2\ndb-1\n")) == ["web-1", "web-2", "db-1"]

    def test_json_strings(self):
        assert read_host_ids(io.StringIO('["web-1", "db-1"]')) == ["web-1", "db-1"]

    def test_json_host_objects(self, inventory):
        text = json.dumps([h.to_dict() for h in inventory[:2]])
        assert read_host_ids(io.StringIO(text)) == ["web-1", "web-2"]

    def test_empty(self):
        assert read_host_ids(io.StringIO("  \n")) == []

    def test_json_not_a_list(self):
        with pytest.raises(HostResolutionError):
            read_host_ids(io.StringIO('{"id": "web-1"}'))

    def test_json_item_without_id(self):
        with pytest.raises(HostResolutionError):
            read_host_ids(io.StringIO('[{"name": "web-1"}]'))


class TestFilters:

    def test_parse_filter(self):
        name, regex = parse_filter("state=^run")
        assert name == "state"
        assert regex.search("running")

    def test_parse_filter_value_may_contain_equals(self):
        name, regex = parse_filter("tags:cmd=a=b")
        assert name == "tags:cmd"
        assert regex.pattern == "a=b"

    @pytest.mark.parametrize("expr", ["state", "=x", "color=red", "state=("])
    def test_parse_filter_invalid(self, expr):
        with pytest.raises(HostResolutionError):
            parse_filter(expr)

    def test_filter_by_field(self, inventory):
        selected = filter_hosts(inventory, ["state=running"])
        assert [h.id for h in selected] == ["web-1", "web-2", "broken-1"]

    def test_filters_are_anded(self, inventory):
        selected = filter_hosts(inventory, ["state=running", "tags:role=^web$", "public_ip_address=."])
        assert [h.id for h in selected] == ["web-1"]

    def test_missing_field_never_matches(self, inventory):
        selected = filter_hosts(inventory, ["public_ip_address=.*"])
        assert [h.id for h in selected] == ["web-1", "db-1"]

    def test_tag_without_value_never_matches(self, inventory):
        assert filter_hosts(inventory, ["tags:backup=.*"]) == []

    def test_no_filters(self, inventory):
        assert filter_hosts(inventory, []) == inventory


class TestFormatTags:

    def test_sorted_by_key(self):
        assert format_tags({"role": "web", "env": "prod"}) == "env=prod, role=web"

    def test_missing_value(self):
        assert format_tags({"k1": "v1", "k2": None}) == "k1=v1, k2="

    def test_selected_keys(self):
        assert format_tags({"role": "web", "env": "prod", "x": "y"}, keys=["role"]) == "role=web"

    def test_empty(self):
        assert format_tags({}) == ""


def test_descriptor_roundtrip_dict():
    host = HostDescriptor(id="a", private_ip_address="10.0.0.1", tags={"k": None})
    assert HostDescriptor.from_dict(host.to_dict()) == host


class TestMalformedInventory:

    def _write(self, tmp_path, text):
        path = tmp_path / "inv.yaml"
        path.write_text(text)
        return path

    def test_entry_not_a_mapping(self, tmp_path):
        path = self._write(tmp_path, "hosts:\n  - web-1\n")
        with pytest.raises(HostResolutionError, match="mapping"):
            load_inventory(path)

    def test_tags_not_a_mapping(self, tmp_path):
        path = self._write(tmp_path, "hosts:\n  - id: web-1\n    tags: [a, b]\n")
        with pytest.raises(HostResolutionError, match="Tags of host 'web-1'"):
            load_inventory(path)

    def test_numeric_fields_become_strings(self, tmp_path):
        path = self._write(tmp_path, "hosts:\n  - id: 42\n    private_ip_address: 10\n    state: 1\n")
        host = load_inventory(path)[0]

        assert host.id == "42"
        assert host.private_ip_address == "10"
        assert host.state == "1"

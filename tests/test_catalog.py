"""
Tests for the BattleScribe catalog parser and loader.

Fixtures are synthetic catalogs in the BSData layout.
"""

import pytest

from tabletop_meta.catalog.loader import (
    CatalogIndex,
    load_catalog_dir,
    load_catalog_documents,
    needs_full_reimport,
)
from tabletop_meta.catalog.parser import PARSER_VERSION, map_weapon_abilities, parse_catalog
from tabletop_meta.errors import UnreadableInputError
from tabletop_meta.models import WeaponAbility

CATALOG_XML = """<?xml version="1.0" encoding="UTF-8"?>
<catalogue id="cat-1" name="Test Marines" xmlns="http://www.battlescribe.net/schema/catalogueSchema">
  <sharedSelectionEntries>
    <selectionEntry id="unit-1" name="Test Squad" type="unit">
      <profiles>
        <profile id="p1" name="Test Squad" typeName="Unit">
          <characteristics>
            <characteristic name="M">6"</characteristic>
            <characteristic name="T">4</characteristic>
            <characteristic name="Sv">3+</characteristic>
            <characteristic name="W">2</characteristic>
            <characteristic name="Ld">6+</characteristic>
            <characteristic name="OC">2</characteristic>
          </characteristics>
        </profile>
        <profile id="p2" name="Oath of Moment" typeName="Abilities">
          <characteristics>
            <characteristic name="Description">Re-roll hit rolls against one target.</characteristic>
          </characteristics>
        </profile>
        <profile id="p3" name="Armour of Faith" typeName="Abilities">
          <characteristics>
            <characteristic name="Description">Models in this unit have a 5+ invulnerable save and feel no pain 6+.</characteristic>
          </characteristics>
        </profile>
      </profiles>
      <categoryLinks>
        <categoryLink id="c1" name="Infantry" targetId="x"/>
        <categoryLink id="c2" name="Battleline" targetId="y"/>
      </categoryLinks>
      <selectionEntries>
        <selectionEntry id="model-1" name="Test Marine" type="model">
          <profiles>
            <profile id="w1" name="Bolt Rifle" typeName="Ranged Weapons">
              <characteristics>
                <characteristic name="Range">24"</characteristic>
                <characteristic name="A">2</characteristic>
                <characteristic name="BS">3+</characteristic>
                <characteristic name="S">4</characteristic>
                <characteristic name="AP">-1</characteristic>
                <characteristic name="D">1</characteristic>
                <characteristic name="Keywords">Assault, Heavy</characteristic>
              </characteristics>
            </profile>
            <profile id="w2" name="Close Combat Weapon" typeName="Melee Weapons">
              <characteristics>
                <characteristic name="Range">Melee</characteristic>
                <characteristic name="A">3</characteristic>
                <characteristic name="WS">3+</characteristic>
                <characteristic name="S">4</characteristic>
                <characteristic name="AP">0</characteristic>
                <characteristic name="D">1</characteristic>
                <characteristic name="Keywords">-</characteristic>
              </characteristics>
            </profile>
          </profiles>
          <categoryLinks>
            <categoryLink id="c3" name="Model Only Keyword" targetId="z"/>
          </categoryLinks>
        </selectionEntry>
        <selectionEntry id="model-2" name="Test Sergeant" type="model">
          <profiles>
            <profile id="w3" name="Bolt Rifle" typeName="Ranged Weapons">
              <characteristics>
                <characteristic name="Range">30"</characteristic>
              </characteristics>
            </profile>
            <profile id="w4" name="Plasma Pistol" typeName="Ranged Weapons">
              <characteristics>
                <characteristic name="Range">12"</characteristic>
                <characteristic name="A">1</characteristic>
                <characteristic name="BS">3+</characteristic>
                <characteristic name="S">8</characteristic>
                <characteristic name="AP">-3</characteristic>
                <characteristic name="D">D3+1</characteristic>
                <characteristic name="Keywords">Pistol, Hazardous</characteristic>
              </characteristics>
            </profile>
          </profiles>
        </selectionEntry>
      </selectionEntries>
      <costs>
        <cost name="pts" typeId="pts" value="90.0"/>
      </costs>
    </selectionEntry>
    <selectionEntry id="unit-2" name="Lone Hero" type="model">
      <costs>
        <cost name="pts" typeId="pts" value="65"/>
      </costs>
    </selectionEntry>
    <selectionEntry id="unit-3" name="Broken Unit" type="unit">
      <costs>
        <cost name="pts" typeId="pts" value="lots"/>
      </costs>
    </selectionEntry>
    <selectionEntry id="upg-1" name="Relic Blade" type="upgrade"/>
    <selectionEntry id="" name="No Id" type="unit"/>
  </sharedSelectionEntries>
</catalogue>
"""


def units_by_id(result):
    return {unit.id: unit for unit in result.units}


class TestParseCatalog:
    """Tests for parse_catalog."""

    def test_emits_only_top_level_units(self):
        result = parse_catalog(CATALOG_XML)
        assert [u.id for u in result.units] == ["unit-1", "unit-2"]

    def test_faction_from_root_or_argument(self):
        assert parse_catalog(CATALOG_XML).units[0].faction == "Test Marines"
        assert parse_catalog(CATALOG_XML, faction="Marines").units[0].faction == "Marines"

    def test_unit_stats(self):
        unit = units_by_id(parse_catalog(CATALOG_XML))["unit-1"]
        assert (unit.move, unit.toughness, unit.save, unit.wounds, unit.leadership, unit.oc) == (6, 4, 3, 2, 6, 2)
        assert unit.points == 90

    def test_stat_defaults(self):
        unit = units_by_id(parse_catalog(CATALOG_XML))["unit-2"]
        assert (unit.move, unit.toughness, unit.save, unit.wounds, unit.leadership, unit.oc) == (0, 0, 0, 1, 6, 1)
        assert unit.weapons == ()
        assert unit.points == 65

    def test_weapons_from_nested_models_deduplicated(self):
        unit = units_by_id(parse_catalog(CATALOG_XML))["unit-1"]
        assert [w.name for w in unit.weapons] == ["Bolt Rifle", "Close Combat Weapon", "Plasma Pistol"]

        rifle, ccw, pistol = unit.weapons
        assert rifle.range == 24  # first occurrence wins
        assert (rifle.attacks, rifle.skill, rifle.strength, rifle.ap, rifle.damage) == (2, 3, 4, -1, 1)
        assert rifle.abilities == (WeaponAbility("ASSAULT"), WeaponAbility("HIT_MOD", value=1))
        assert ccw.range == "melee"
        assert ccw.abilities == ()
        assert pistol.damage == "D3+1"
        assert pistol.abilities == (WeaponAbility("PISTOL"), WeaponAbility("HAZARDOUS"))

    def test_abilities_and_keywords(self):
        unit = units_by_id(parse_catalog(CATALOG_XML))["unit-1"]
        assert unit.abilities == ("Oath of Moment", "Armour of Faith")
        assert dict(unit.ability_descriptions)["Oath of Moment"] == "Re-roll hit rolls against one target."
        assert unit.keywords == ("Infantry", "Battleline")

    def test_invulnerable_save_and_fnp(self):
        units = units_by_id(parse_catalog(CATALOG_XML))
        assert units["unit-1"].invuln_save == 5
        assert units["unit-1"].fnp == 6
        assert units["unit-2"].invuln_save is None
        assert units["unit-2"].fnp is None

    def test_malformed_entries_reported(self):
        result = parse_catalog(CATALOG_XML)
        assert len(result.errors) == 2
        assert any("Broken Unit" in error for error in result.errors)
        assert any("No Id" in error for error in result.errors)

    def test_idempotent(self):
        assert parse_catalog(CATALOG_XML).units == parse_catalog(CATALOG_XML).units

    def test_without_namespace(self):
        xml = '<catalogue name="Plain"><selectionEntries><selectionEntry id="a" name="A" type="unit"/></selectionEntries></catalogue>'
        result = parse_catalog(xml)
        assert [(u.id, u.faction) for u in result.units] == [("a", "Plain")]

    def test_invulnerable_save_profile(self):
        xml = """<catalogue name="X"><selectionEntry id="a" name="A" type="unit">
            <profiles><profile name="Invuln" typeName="Invulnerable Save">
                <characteristics><characteristic name="Save">4+</characteristic></characteristics>
            </profile></profiles></selectionEntry></catalogue>"""
        assert parse_catalog(xml).units[0].invuln_save == 4

    def test_not_xml_raises(self):
        with pytest.raises(UnreadableInputError):
            parse_catalog("this is not xml <")

    def test_parser_version(self):
        assert PARSER_VERSION == 2


class TestWeaponAbilityMapping:
    """Tests for map_weapon_abilities."""

    @pytest.mark.parametrize("name, expected", [
        ("Sustained Hits 2", WeaponAbility("SUSTAINED_HITS", value=2)),
        ("Sustained Hits", WeaponAbility("SUSTAINED_HITS", value=1)),
        ("Lethal Hits", WeaponAbility("LETHAL_HITS")),
        ("Rapid Fire 1", WeaponAbility("ATTACKS_MOD", value=1)),
        ("Anti-Vehicle 4+", WeaponAbility("ANTI", value=4, keyword="Vehicle")),
        ("Melta 2", WeaponAbility("MELTA", value=2)),
        ("Twin-linked", WeaponAbility("TWIN_LINKED")),
        ("Re-roll hit rolls of 1", WeaponAbility("REROLL_HITS_OF_1")),
    ])
    def test_known_abilities(self, name, expected):
        assert map_weapon_abilities([name]) == (expected,)

    def test_unknown_dropped(self):
        assert map_weapon_abilities(["Flamboyant", "-"]) == ()


class TestCatalogLoader:
    """Tests for document loading and the unit index."""

    def test_needs_full_reimport(self):
        assert needs_full_reimport(None)
        assert needs_full_reimport(PARSER_VERSION - 1)
        assert not needs_full_reimport(PARSER_VERSION)

    def test_parallel_equals_sequential(self):
        documents = [("B Faction.cat", CATALOG_XML), ("A Faction.cat", CATALOG_XML.replace("unit-", "a-unit-"))]
        sequential = load_catalog_documents(documents, max_workers=1)
        parallel = load_catalog_documents(documents, max_workers=4)
        assert parallel.units == sequential.units
        assert parallel.errors == sequential.errors
        assert sequential.units[0].faction == "A Faction"
        assert sequential.parser_version == PARSER_VERSION

    def test_unreadable_document_skipped(self):
        result = load_catalog_documents([("bad.cat", "<not-closed>"), ("good.cat", CATALOG_XML)])
        assert [u.id for u in result.units] == ["unit-1", "unit-2"]
        assert result.errors[0].startswith("bad.cat")

    def test_load_catalog_dir(self, tmp_path):
        (tmp_path / "Test Marines.cat").write_text(CATALOG_XML, encoding="utf-8")
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        result = load_catalog_dir(tmp_path)
        assert [u.id for u in result.units] == ["unit-1", "unit-2"]
        assert result.units[0].faction == "Test Marines"

    def test_missing_dir(self, tmp_path):
        result = load_catalog_dir(tmp_path / "missing")
        assert result.units == []
        assert result.errors == []

    def test_index(self):
        index = CatalogIndex(parse_catalog(CATALOG_XML, faction="Test Marines").units)
        assert len(index) == 2
        assert index.get_unit("unit-2").name == "Lone Hero"
        assert index.get_unit("nope") is None
        assert [u.name for u in index.search_units(name="test")] == ["Test Squad"]
        assert [u.name for u in index.search_units(faction="marines")] == ["Lone Hero", "Test Squad"]
        assert index.list_factions() == ["Test Marines"]

    def test_index_upsert_replaces(self):
        units = parse_catalog(CATALOG_XML).units
        index = CatalogIndex(units)
        index.upsert(parse_catalog(CATALOG_XML.replace("Lone Hero", "Renamed Hero")).units)
        assert len(index) == 2
        assert index.get_unit("unit-2").name == "Renamed Hero"

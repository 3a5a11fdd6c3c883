"""Tests for ueindex.index."""

from __future__ import annotations

from typing import Optional

from ueindex.errors import IssueKind, ScanIssue
from ueindex.index import AggregateIndex
from ueindex.manifest import build_configurations
from ueindex.models import (
    KIND_CLASS,
    KIND_ENUM,
    KIND_STRUCT,
    AssetEntity,
    CallableEntity,
    DeclarationEntity,
    ModuleRef,
    Parameter,
    PluginEntity,
    ProjectDescriptor,
)


def _project(*modules: str) -> ProjectDescriptor:
    return ProjectDescriptor(
        root="/projects/MyGame",
        name="MyGame",
        manifest_path="/projects/MyGame/MyGame.uproject",
        engine_association="5.3",
        modules=tuple(ModuleRef(name=name, type="Runtime", loading_phase="Default") for name in modules),
        plugins=(),
        target_platforms=("Windows",),
        build_configurations=build_configurations(("Windows",)),
    )


def _decl(name: str, parent: Optional[str] = None, *, kind: str = KIND_CLASS, file: str = "") -> DeclarationEntity:
    return DeclarationEntity(
        name=name,
        kind=kind,
        parent=parent,
        specifiers=(),
        file=file or f"Source/MyGame/{name}.h",
        line=1,
    )


def _callable(
    name: str,
    owner: str = "",
    *,
    return_type: str = "void",
    parameters: tuple = (),
    file: str = "Source/MyGame/Funcs.h",
    blueprint_callable: bool = False,
) -> CallableEntity:
    return CallableEntity(
        name=name,
        owner=owner,
        return_type=return_type,
        parameters=parameters,
        specifiers=(),
        file=file,
        line=1,
        blueprint_callable=blueprint_callable,
    )


def _asset(path: str, asset_type: str = "Mesh", size: int = 1) -> AssetEntity:
    name = path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return AssetEntity(name=name, path=path, type=asset_type, size=size)


def test_duplicate_declarations_keep_the_last_and_count_collisions() -> None:
    first = _decl("AHero", "ACharacter", file="Source/MyGame/A/Hero.h")
    second = _decl("AHero", "APawn", file="Source/MyGame/B/Hero.h")

    index = AggregateIndex(_project("MyGame"), declarations=[first, second])

    assert index.declarations() == [second]
    assert index.find_declaration("AHero") is second
    assert index.collisions["declarations"] == 1
    assert index.summary().collisions["declarations"] == 1


def test_callables_are_keyed_by_owner_and_name() -> None:
    index = AggregateIndex(
        _project(),
        callables=[
            _callable("BeginPlay", "AHero"),
            _callable("BeginPlay", "AEnemy"),
            _callable("BeginPlay", "AHero", file="Source/MyGame/Other.h"),
        ],
    )

    assert len(index.callables()) == 2
    assert index.collisions["callables"] == 1
    assert [entity.owner for entity in index.find_callables("BeginPlay")] == ["AHero", "AEnemy"]
    assert index.callables_of("AHero")[0].file == "Source/MyGame/Other.h"
    assert index.callables_of("Nobody") == []


def test_hierarchy_walks_parents_present_in_index() -> None:
    index = AggregateIndex(
        _project(),
        declarations=[
            _decl("AHero", "ABaseCharacter"),
            _decl("ABaseCharacter", "ACharacter"),
        ],
    )

    assert index.hierarchy("AHero") == ["AHero", "ABaseCharacter"]
    assert index.hierarchy("ABaseCharacter") == ["ABaseCharacter"]
    assert index.hierarchy("Missing") == []


def test_hierarchy_second_element_is_the_indexed_parent() -> None:
    declarations = [_decl("C", "B"), _decl("B", "A"), _decl("A"), _decl("Orphan", "External")]
    index = AggregateIndex(_project(), declarations=declarations)

    for declaration in declarations:
        chain = index.hierarchy(declaration.name)
        assert chain[0] == declaration.name
        if declaration.parent and index.find_declaration(declaration.parent):
            assert chain[1] == declaration.parent


def test_hierarchy_terminates_on_cycles() -> None:
    declarations = [_decl("A", "B"), _decl("B", "C"), _decl("C", "A"), _decl("Self", "Self")]
    index = AggregateIndex(_project(), declarations=declarations)

    assert index.hierarchy("A") == ["A", "B", "C"]
    assert index.hierarchy("Self") == ["Self"]
    for declaration in declarations:
        assert len(index.hierarchy(declaration.name)) <= len(declarations)


def test_usages_include_direct_subclasses_and_type_references() -> None:
    index = AggregateIndex(
        _project(),
        declarations=[
            _decl("UWeapon", "UObject", file="Source/MyGame/Weapon.h"),
            _decl("URifle", "UWeapon", file="Source/MyGame/Rifle.h"),
            _decl("UWeaponry", "UObject", file="Source/MyGame/Weaponry.h"),
        ],
        callables=[
            _callable("Equip", "AHero", parameters=(Parameter("Weapon", "UWeapon*"),), file="Source/MyGame/Hero.h"),
            _callable("GetWeapon", "AHero", return_type="UWeapon*", file="Source/MyGame/Hero.h"),
            _callable("GetArmory", "AHero", return_type="UWeaponry*", file="Source/MyGame/Armory.h"),
            _callable("Jump", "AHero", file="Source/MyGame/Jump.h"),
        ],
    )

    usages = index.usages("UWeapon")

    assert usages.name == "UWeapon"
    # Substring matches on callable types over-report by design of the query.
    assert usages.files == [
        "Source/MyGame/Armory.h",
        "Source/MyGame/Hero.h",
        "Source/MyGame/Rifle.h",
    ]
    assert usages.count == 3


def test_usages_are_a_superset_of_direct_subclass_files() -> None:
    declarations = [_decl("Child1", "Base"), _decl("Child2", "Base"), _decl("Other", "Unrelated")]
    index = AggregateIndex(_project(), declarations=declarations)

    files = set(index.usages("Base").files)

    assert {d.file for d in declarations if d.parent == "Base"} <= files
    assert _decl("Other").file not in files


def test_assets_are_listed_per_path_with_last_name_winning() -> None:
    first = _asset("Meshes/SM_Rock.uasset", size=10)
    second = _asset("Props/SM_Rock.uasset", size=20)

    index = AggregateIndex(_project(), assets=[first, second])

    assert len(index.assets()) == 2
    assert index.find_asset("SM_Rock") is second
    assert index.asset_at("Meshes/SM_Rock.uasset") is first
    assert index.collisions["assets"] == 1
    assert index.summary().assets["total_bytes"] == 30


def test_search_is_case_insensitive_substring() -> None:
    index = AggregateIndex(
        _project(),
        declarations=[_decl("AHeroCharacter"), _decl("FHeroStats", kind=KIND_STRUCT), _decl("EColor", kind=KIND_ENUM)],
        callables=[_callable("Heal", "AHeroCharacter"), _callable("Tick", "AEnemy")],
        assets=[_asset("Characters/Hero/SK_Hero.uasset"), _asset("Audio/Theme.uasset", "Audio")],
        plugins=[
            PluginEntity(name="HeroTools", path="/p/HeroTools", category="Editor"),
            PluginEntity(name="Inv", path="/p/Inv", friendly_name="Inventory", category="Gameplay"),
        ],
    )

    assert [d.name for d in index.search_declarations("hero")] == ["AHeroCharacter", "FHeroStats"]
    assert [d.name for d in index.search_declarations("uenum")] == ["EColor"]
    assert [c.name for c in index.search_callables("HERO")] == ["Heal"]
    assert [a.name for a in index.search_assets("characters/")] == ["SK_Hero"]
    assert [a.name for a in index.search_assets("audio")] == ["Theme"]
    assert [p.name for p in index.search_plugins("invent")] == ["Inv"]
    assert [p.name for p in index.search_plugins("gameplay")] == ["Inv"]


def test_listings_by_kind_type_and_flags() -> None:
    index = AggregateIndex(
        _project(),
        declarations=[_decl("AHero"), _decl("FStats", kind=KIND_STRUCT)],
        callables=[_callable("Fire", "AHero", blueprint_callable=True), _callable("Internal", "AHero")],
        assets=[_asset("Blueprints/BP_Hero.uasset", "Blueprint"), _asset("Meshes/SM_Rock.uasset")],
        plugins=[
            PluginEntity(name="On", path="/p/On", enabled=True, category="Gameplay"),
            PluginEntity(name="Off", path="/p/Off", enabled=False, installed=False, category="gameplay"),
        ],
    )

    assert [d.name for d in index.declarations("ustruct")] == ["FStats"]
    assert [c.name for c in index.callables(externally_invokable=True)] == ["Fire"]
    assert [a.name for a in index.blueprints()] == ["BP_Hero"]
    assert [a.name for a in index.assets("mesh")] == ["SM_Rock"]
    assert [p.name for p in index.plugins(enabled=True)] == ["On"]
    assert [p.name for p in index.plugins_by_category("GAMEPLAY")] == ["On", "Off"]
    assert index.is_plugin_installed("On") is True
    assert index.is_plugin_installed("Off") is False
    assert index.is_plugin_installed("Missing") is False


def test_modules_carry_their_declaration_names() -> None:
    index = AggregateIndex(
        _project("MyGame", "MyGameEditor"),
        module_declarations={"MyGame": ["AHero", "FStats", "AHero"]},
    )

    assert index.find_module("MyGame").declarations == ("AHero", "FStats")
    assert index.find_module("MyGameEditor").declarations == ()


def test_summary_statistics() -> None:
    index = AggregateIndex(
        _project("MyGame"),
        declarations=[_decl("AHero"), _decl("FStats", kind=KIND_STRUCT), _decl("EMode", kind=KIND_ENUM)],
        callables=[_callable("Fire", "AHero", blueprint_callable=True), _callable("Reload", "AHero")],
        assets=[
            _asset("Blueprints/BP_Hero.uasset", "Blueprint", 100),
            _asset("Meshes/SM_Rock.uasset", "Mesh", 1024),
            _asset("Meshes/SM_Tree.uasset", "Mesh", 2048),
        ],
        plugins=[
            PluginEntity(name="On", path="/p/On", enabled=True, category="Gameplay"),
            PluginEntity(name="Off", path="/p/Off", enabled=False, category="Gameplay"),
            PluginEntity(name="Tools", path="/p/Tools", category="Editor"),
        ],
        issues=[ScanIssue(IssueKind.FILE_UNREADABLE, "Content/Locked.uasset")],
    )

    summary = index.summary()

    assert summary.project_name == "MyGame"
    assert summary.engine_association == "5.3"
    assert summary.platforms == ["Windows"]
    assert summary.modules == {"total": 1, "list": ["MyGame"]}
    assert summary.declarations == {
        "total": 3,
        "by_kind": {"UCLASS": 1, "USTRUCT": 1, "UENUM": 1, "UINTERFACE": 0},
    }
    assert summary.callables == {"total": 2, "externally_invokable": 1}
    assert summary.assets == {
        "total": 3,
        "by_type": {"Blueprint": 1, "Mesh": 2},
        "total_bytes": 3172,
    }
    assert summary.blueprints == {"total": 1}
    assert summary.plugins == {
        "total": 3,
        "enabled": 2,
        "categories": {"Gameplay": 2, "Editor": 1},
    }
    assert summary.collisions == {"declarations": 0, "callables": 0, "assets": 0, "plugins": 0}
    assert summary.issues == {"file_unreadable": 1}

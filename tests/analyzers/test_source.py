"""Tests for the source classifier line rules."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from ueindex.analyzers.source import (
    SourceClassifier,
    extract_specifiers,
    match_callable_header,
    match_declaration_header,
    parse_enum_entries,
    parse_parameters,
    split_top_level,
)
from ueindex.config import IndexConfig, ScanConfig
from ueindex.errors import IssueKind
from ueindex.manifest import ManifestParser
from ueindex.models import KIND_CLASS, KIND_ENUM, KIND_INTERFACE, KIND_STRUCT, EnumValue, Parameter


def _classify(text: str, classifier: SourceClassifier | None = None):
    classifier = classifier or SourceClassifier()
    return classifier.classify_text(textwrap.dedent(text).lstrip("\n"), "Source/MyGame/Test.h", "MyGame")


def test_class_marker_with_parent_clause() -> None:
    declarations, _ = _classify(
        """
        UCLASS()
        class Foo : public Bar
        {
            GENERATED_BODY()
        };
        """
    )

    assert len(declarations) == 1
    declaration = declarations[0]
    assert declaration.name == "Foo"
    assert declaration.kind == KIND_CLASS
    assert declaration.parent == "Bar"
    assert declaration.file == "Source/MyGame/Test.h"
    assert declaration.line == 2
    assert declaration.module == "MyGame"


def test_class_specifiers_and_flags() -> None:
    declarations, _ = _classify(
        """
        UCLASS(Blueprintable, BlueprintType, meta=(DisplayName="My Actor, Deluxe"))
        class MYGAME_API AMyActor final : public AActor
        {
        };
        """
    )

    declaration = declarations[0]
    assert declaration.name == "AMyActor"
    assert declaration.parent == "AActor"
    assert declaration.specifiers == (
        "Blueprintable",
        "BlueprintType",
        'meta=(DisplayName="My Actor, Deluxe")',
    )
    assert declaration.blueprintable is True
    assert declaration.blueprint_type is True


def test_class_without_parent() -> None:
    declarations, _ = _classify(
        """
        UCLASS()
        class UStandalone
        {
        };
        """
    )

    assert declarations[0].name == "UStandalone"
    assert declarations[0].parent is None
    assert declarations[0].blueprintable is False


def test_header_outside_lookahead_window_is_dropped() -> None:
    filler = "\n".join("// filler" for _ in range(10))
    text = f"UCLASS()\n{filler}\nclass Late : public UObject\n{{\n}};\n"

    declarations, _ = SourceClassifier().classify_text(text, "Late.h")

    assert declarations == []


def test_lookahead_window_is_configurable() -> None:
    filler = "\n".join("// filler" for _ in range(10))
    text = f"UCLASS()\n{filler}\nclass Late : public UObject\n{{\n}};\n"
    config = IndexConfig(root=Path("."), scan=ScanConfig(declaration_lookahead=11))

    declarations, _ = SourceClassifier(config).classify_text(text, "Late.h")

    assert [declaration.name for declaration in declarations] == ["Late"]


def test_lookahead_stops_at_next_marker() -> None:
    declarations, _ = _classify(
        """
        UCLASS()
        // no header here
        USTRUCT()
        struct FStats
        {
        };
        """
    )

    assert [(declaration.name, declaration.kind) for declaration in declarations] == [
        ("FStats", KIND_STRUCT)
    ]


def test_forward_declaration_is_not_a_header() -> None:
    declarations, _ = _classify(
        """
        UCLASS()
        class UForward;
        class UReal : public UObject
        {
        };
        """
    )

    assert [declaration.name for declaration in declarations] == ["UReal"]


def test_struct_and_interface_markers() -> None:
    declarations, _ = _classify(
        """
        USTRUCT(BlueprintType)
        struct MYGAME_API FItemData : public FTableRowBase
        {
            GENERATED_BODY()
        };

        UINTERFACE(MinimalAPI)
        class UInteractable : public UInterface
        {
            GENERATED_BODY()
        };
        """
    )

    assert [(d.name, d.kind, d.parent) for d in declarations] == [
        ("FItemData", KIND_STRUCT, "FTableRowBase"),
        ("UInteractable", KIND_INTERFACE, "UInterface"),
    ]
    assert declarations[0].blueprint_type is True


def test_enum_values_are_collected_until_closing_brace() -> None:
    declarations, _ = _classify(
        """
        UENUM(BlueprintType)
        enum class Color
        {
            Red,
            Green,
            Blue = 5,
        };
        """
    )

    assert len(declarations) == 1
    color = declarations[0]
    assert color.name == "Color"
    assert color.kind == KIND_ENUM
    assert color.parent is None
    assert color.values == (
        EnumValue("Red"),
        EnumValue("Green"),
        EnumValue("Blue", 5),
    )


def test_enum_values_on_one_line_with_metadata_and_comments() -> None:
    declarations, _ = _classify(
        """
        UENUM()
        enum class EWeapon : uint8
        {
            Sword UMETA(DisplayName = "Sword, Long"), Bow = 0x10, // ranged
            Staff
        };
        """
    )

    assert declarations[0].values == (
        EnumValue("Sword"),
        EnumValue("Bow", 16),
        EnumValue("Staff"),
    )


def test_inline_enum_body() -> None:
    declarations, _ = _classify(
        """
        UENUM()
        enum class EState : uint8 { Idle, Running = 2 };
        """
    )

    assert declarations[0].name == "EState"
    assert declarations[0].values == (EnumValue("Idle"), EnumValue("Running", 2))


def test_marker_with_inline_declaration() -> None:
    declarations, _ = _classify(
        """
        USTRUCT() struct FInline
        {
        };
        """
    )

    assert [(d.name, d.line) for d in declarations] == [("FInline", 1)]


def test_callable_with_owner_parameters_and_flags() -> None:
    _, callables = _classify(
        """
        UCLASS()
        class AInventory : public AActor
        {
            GENERATED_BODY()
        public:
            UFUNCTION(BlueprintCallable, Category = "Inventory")
            bool AddItem(UInventoryItem* Item, int32 Count = 1);

            UFUNCTION(BlueprintPure)
            FORCEINLINE int32 GetCount() const { return Count; }

            UFUNCTION()
            virtual void OnRep_Items();
        };
        """
    )

    assert [entity.name for entity in callables] == ["AddItem", "GetCount", "OnRep_Items"]
    add_item, get_count, on_rep = callables
    assert add_item.owner == "AInventory"
    assert add_item.return_type == "bool"
    assert add_item.parameters == (
        Parameter(name="Item", type="UInventoryItem*"),
        Parameter(name="Count", type="int32"),
    )
    assert add_item.specifiers == ("BlueprintCallable", 'Category = "Inventory"')
    assert add_item.blueprint_callable is True
    assert add_item.line == 7
    assert get_count.return_type == "int32"
    assert get_count.parameters == ()
    assert get_count.blueprint_callable is True
    assert on_rep.return_type == "void"
    assert on_rep.blueprint_callable is False


def test_callable_owner_is_empty_without_preceding_declaration() -> None:
    _, callables = _classify(
        """
        UFUNCTION(BlueprintCallable)
        static void DoThing();
        """
    )

    assert callables[0].owner == ""
    assert callables[0].return_type == "void"


def test_qualified_callable_name_sets_owner() -> None:
    _, callables = _classify(
        """
        UFUNCTION()
        void AMyActor::Fire(float Power)
        """
    )

    assert callables[0].name == "Fire"
    assert callables[0].owner == "AMyActor"


def test_callable_without_header_in_window_is_dropped() -> None:
    _, callables = _classify(
        """
        UFUNCTION()
        // comment
        // comment
        // comment
        // comment
        // comment
        void TooFar();
        """
    )

    assert callables == []


def test_wrapped_parameter_list_is_joined() -> None:
    _, callables = _classify(
        """
        UFUNCTION(BlueprintCallable)
        void Fire(int32 Count,
                  float Spread,
                  const TArray<AActor*>& Ignored);
        """
    )

    assert [entity.name for entity in callables] == ["Fire"]
    assert callables[0].line == 2
    assert callables[0].parameters == (
        Parameter(name="Count", type="int32"),
        Parameter(name="Spread", type="float"),
        Parameter(name="Ignored", type="const TArray<AActor*>&"),
    )


def test_parameter_list_left_open_past_window_is_dropped() -> None:
    classifier = SourceClassifier(IndexConfig(root=Path("."), scan=ScanConfig(callable_lookahead=2)))

    _, callables = _classify(
        """
        UFUNCTION()
        void Fire(int32 Count,
                  float Spread,
                  bool bLoud);
        """,
        classifier,
    )

    assert callables == []


def test_comment_lines_in_callable_window_are_not_headers() -> None:
    _, callables = _classify(
        """
        UFUNCTION(BlueprintPure)
        /**
         * Returns health(clamped)
         */
        float GetHealth() const;
        """
    )

    assert [(entity.name, entity.return_type) for entity in callables] == [("GetHealth", "float")]


def test_callables_after_enum_keep_previous_owner() -> None:
    _, callables = _classify(
        """
        UCLASS()
        class AOwner : public AActor
        {
            UENUM()
            enum class EMode { A, B };

            UFUNCTION()
            void SetMode(EMode Mode);
        };
        """
    )

    assert callables[0].owner == "AOwner"
    assert callables[0].parameters == (Parameter(name="Mode", type="EMode"),)


def test_extract_specifiers_returns_remainder() -> None:
    assert extract_specifiers("UCLASS()") == ((), "")
    assert extract_specifiers("UCLASS") == ((), "")
    assert extract_specifiers("USTRUCT(Atomic) struct FX {") == (("Atomic",), "struct FX {")


def test_split_top_level_respects_parentheses_and_quotes() -> None:
    assert split_top_level('A, meta=(B, C), D="x, y"') == ["A", "meta=(B, C)", 'D="x, y"']
    assert split_top_level("") == []


def test_match_declaration_header_kinds() -> None:
    assert match_declaration_header(KIND_CLASS, "class UFoo : public UObject") == ("UFoo", "UObject")
    assert match_declaration_header(KIND_STRUCT, "struct FBar") == ("FBar", None)
    assert match_declaration_header(KIND_ENUM, "enum class EBaz : uint8") == ("EBaz", None)
    assert match_declaration_header(KIND_CLASS, "struct FBar") is None
    assert match_declaration_header(KIND_CLASS, "class UFoo;") is None


def test_match_callable_header_rejects_statements() -> None:
    assert match_callable_header("if (bReady)") is None
    assert match_callable_header("GENERATED_BODY()") is None
    assert match_callable_header("void Tick(float DeltaTime) override;") == (
        "void",
        "Tick",
        "float DeltaTime",
        "",
    )


def test_match_callable_header_rejects_unclosed_parameter_list() -> None:
    assert match_callable_header("void Fire(int32 Count,") is None


@pytest.mark.parametrize("text", ["", "   ", "void"])
def test_parse_parameters_empty_lists(text: str) -> None:
    assert parse_parameters(text) == ()


def test_parse_parameters_drops_defaults_and_keeps_const_refs() -> None:
    assert parse_parameters("const FString& Name, bool bForce = false") == (
        Parameter(name="Name", type="const FString&"),
        Parameter(name="bForce", type="bool"),
    )


def test_parse_parameters_unnamed_parameter_keeps_type() -> None:
    assert parse_parameters("int32") == (Parameter(name="", type="int32"),)


def test_parse_parameters_splits_template_arguments_naively() -> None:
    # Commas inside angle brackets are treated as parameter separators.
    assert parse_parameters("TMap<FString, int32> Scores") == (
        Parameter(name="FString", type="TMap<"),
        Parameter(name="Scores", type="int32>"),
    )


def test_parse_parameters_single_argument_template_is_intact() -> None:
    assert parse_parameters("const TArray<AActor*>& Targets") == (
        Parameter(name="Targets", type="const TArray<AActor*>&"),
    )


def test_parse_enum_entries_ignores_non_identifiers() -> None:
    assert parse_enum_entries("A = 1, B = SomeMacro, , 9") == [
        EnumValue("A", 1),
        EnumValue("B", None),
    ]


def test_scan_module_reads_files_relative_to_project_root(project_builder) -> None:
    project_builder.manifest()
    project_builder.write(
        {
            "Source/MyGame/Public/Hero.h": """
                UCLASS()
                class AHero : public ACharacter
                {
                };
            """,
            "Source/MyGame/Private/Hero.cpp": "#include \"Hero.h\"\n",
            "Source/MyGame/README.txt": "UCLASS()\nclass NotSource : public UObject\n",
        }
    )
    project = ManifestParser().parse(project_builder.path())

    result = SourceClassifier().analyze(project)

    assert [(d.name, d.file) for d in result.declarations] == [
        ("AHero", "Source/MyGame/Public/Hero.h")
    ]
    assert result.module_declarations == {"MyGame": ["AHero"]}
    assert result.issues == []


def test_utf16_file_is_recorded_and_skipped(project_builder) -> None:
    project_builder.manifest()
    project_builder.write({"Source/MyGame/Good.h": "USTRUCT()\nstruct FGood\n{\n};\n"})
    bad = project_builder.path() / "Source" / "MyGame" / "Bad.h"
    bad.write_bytes("UCLASS()\nclass ABad : public UObject\n".encode("utf-16"))
    project = ManifestParser().parse(project_builder.path())

    result = SourceClassifier().analyze(project)

    assert [d.name for d in result.declarations] == ["FGood"]
    assert [(issue.kind, issue.path) for issue in result.issues] == [
        (IssueKind.FILE_UNPARSEABLE, "Source/MyGame/Bad.h")
    ]


def test_module_without_source_directory_yields_nothing(project_builder) -> None:
    project_builder.manifest()
    project = ManifestParser().parse(project_builder.path())

    result = SourceClassifier().analyze(project)

    assert result.declarations == []
    assert result.callables == []
    assert result.module_declarations == {"MyGame": []}


def test_stray_non_utf8_byte_does_not_hide_the_file(project_builder) -> None:
    project_builder.manifest()
    hero = project_builder.path() / "Source" / "MyGame" / "Hero.h"
    hero.parent.mkdir(parents=True)
    hero.write_bytes(b"// Copyright \xa9 Studio\nUCLASS()\nclass AHero : public AActor\n{\n};\n")
    project = ManifestParser().parse(project_builder.path())

    result = SourceClassifier().analyze(project)

    assert [(d.name, d.parent, d.line) for d in result.declarations] == [("AHero", "AActor", 3)]
    assert result.issues == []


def test_unreadable_file_is_recorded_and_siblings_still_indexed(project_builder, monkeypatch) -> None:
    project_builder.manifest()
    project_builder.write(
        {
            "Source/MyGame/Good.h": "USTRUCT()\nstruct FGood\n{\n};\n",
            "Source/MyGame/Locked.h": "UCLASS()\nclass ALocked : public AActor\n{\n};\n",
        }
    )
    project = ManifestParser().parse(project_builder.path())

    real_read_bytes = type(project_builder.path()).read_bytes

    def locked_read_bytes(self):
        if self.name == "Locked.h":
            raise PermissionError(13, "Permission denied", str(self))
        return real_read_bytes(self)

    monkeypatch.setattr(type(project_builder.path()), "read_bytes", locked_read_bytes)

    result = SourceClassifier().analyze(project)

    assert [d.name for d in result.declarations] == ["FGood"]
    assert result.module_declarations == {"MyGame": ["FGood"]}
    assert [(issue.kind, issue.path) for issue in result.issues] == [
        (IssueKind.FILE_UNREADABLE, "Source/MyGame/Locked.h")
    ]

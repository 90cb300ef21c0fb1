from pathlib import Path

import pytest

from trunk_girth.species_catalog import find_species, load_species_catalog


def test_bundled_catalog_loads_with_defaults_filled_in() -> None:
    catalog = load_species_catalog()
    assert len(catalog) >= 20
    for species in catalog:
        assert species.average_height_meters and species.average_height_meters > 0
        assert species.crown_allometry_a is not None
        assert species.crown_allometry_b is not None
        assert species.minimum_circumference_centimeters < species.maximum_circumference_centimeters


def test_find_species_matches_case_insensitive_substrings() -> None:
    catalog = load_species_catalog()
    assert find_species(catalog, "neem").common_name == "Neem"
    assert find_species(catalog, "MANGIFERA").common_name == "Mango"
    assert find_species(catalog, "no such tree") is None
    assert find_species(catalog, None) is None
    assert find_species(catalog, "  ") is None


def test_custom_catalog_uses_default_allometry(tmp_path: Path) -> None:
    catalog_path = tmp_path / "catalog.yaml"
    catalog_path.write_text(
        "default_crown_allometry: {a: 0.2, b: 0.7}\n"
        "species:\n"
        "  - name: Oak\n"
        "    average_height_meters: 20\n",
        encoding="utf-8",
    )
    catalog = load_species_catalog(catalog_path)
    assert catalog[0].crown_allometry_a == 0.2
    assert catalog[0].crown_allometry_b == 0.7
    assert catalog[0].minimum_circumference_centimeters == 20.0
    assert catalog[0].display_name == "Oak"


def test_missing_catalog_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_species_catalog(tmp_path / "missing.yaml")

from pathlib import Path

import yaml

from trunk_girth.measurement_models import SpeciesDescriptor

DEFAULT_SPECIES_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "species_catalog.yaml"


def _build_species_descriptor(
    record: dict,
    default_allometry: dict,
    default_circumference_range: dict,
) -> SpeciesDescriptor:
    if "name" not in record:
        raise ValueError(f"Species catalog entry without a name: {record}")
    allometry = record.get("crown_allometry") or default_allometry
    circumference_range = record.get("circumference_range_centimeters") or default_circumference_range
    return SpeciesDescriptor(
        name=str(record["name"]),
        common_name=str(record.get("common_name", "")),
        scientific_name=str(record.get("scientific_name", "")),
        average_height_meters=None
        if record.get("average_height_meters") is None
        else float(record["average_height_meters"]),
        average_dbh_centimeters=None
        if record.get("average_dbh_centimeters") is None
        else float(record["average_dbh_centimeters"]),
        crown_allometry_a=float(allometry["a"]),
        crown_allometry_b=float(allometry["b"]),
        minimum_circumference_centimeters=float(circumference_range["minimum"]),
        maximum_circumference_centimeters=float(circumference_range["maximum"]),
    )


def load_species_catalog(catalog_path: Path | None = None) -> list[SpeciesDescriptor]:
    catalog_path = Path(catalog_path) if catalog_path is not None else DEFAULT_SPECIES_CATALOG_PATH
    if not catalog_path.exists():
        raise FileNotFoundError(f"Species catalog not found: {catalog_path}")
    with catalog_path.open("r", encoding="utf-8") as file:
        catalog = yaml.safe_load(file) or {}

    default_allometry = catalog.get("default_crown_allometry", {"a": 0.148, "b": 0.651})
    default_circumference_range = catalog.get(
        "default_circumference_range_centimeters",
        {"minimum": 20.0, "maximum": 500.0},
    )
    return [
        _build_species_descriptor(record, default_allometry, default_circumference_range)
        for record in catalog.get("species", [])
    ]


def find_species(catalog: list[SpeciesDescriptor], query: str | None) -> SpeciesDescriptor | None:
    if not query:
        return None
    search = query.strip().lower()
    if not search:
        return None
    for species in catalog:
        candidate_names = (species.name, species.common_name, species.scientific_name)
        if any(candidate and search in candidate.lower() for candidate in candidate_names):
            return species
    return None

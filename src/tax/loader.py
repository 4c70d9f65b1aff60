"""Rate table loader with YAML parsing and validation.

Turns rate table documents into immutable ``RateTableSet`` records. Every
problem with a document surfaces here, at load time, as ``InvalidRateTable``;
nothing about a document can fail later during a calculation.
"""

import re
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from src.core.errors import InvalidBandTable, InvalidRateTable
from src.core.logging import get_logger
from src.tax.models import (
    Band,
    BandTable,
    EmployerNIThresholdTable,
    IncomeTaxTable,
    NICategoryRecord,
    NIThresholdTable,
    PayFrequency,
    PersonalAllowance,
    RateTableSet,
    StudentLoanTerms,
)
from src.tax.money import percent_to_basis_points, percent_to_permille, pounds_to_minor
from src.tax.schema import (
    EmployerNIModel,
    IncomeTaxModel,
    NICategoryModel,
    NIThresholdModel,
    RateTableDocument,
)
from src.tax.store import RateTableStore
from src.tax.year import TaxYear

logger = get_logger(__name__)

BUNDLED_RATE_TABLES_DIR = Path(__file__).parent / "data"

_FILE_YEAR = re.compile(r"^(\d{4})[-_](\d{2}|\d{4})$")


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the parsed YAML content

    Raises:
        InvalidRateTable: If the file cannot be read or parsed
    """
    yaml = YAML(typ="safe")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError:
        raise InvalidRateTable(f"Rate table file not found: {path}", path=path)
    except Exception as e:
        raise InvalidRateTable(f"Failed to parse YAML: {e}", path=path)

    if data is None:
        raise InvalidRateTable("Empty rate table file", path=path)

    if not isinstance(data, dict):
        raise InvalidRateTable(
            f"Rate table file must be a YAML mapping, got {type(data).__name__}",
            path=path,
        )

    return dict(data)


def _minor(value: Any, where: str, errors: list[str]) -> int:
    try:
        return pounds_to_minor(value)
    except ValueError as e:
        errors.append(f"{where}: {e}")
        return 0


def _permille(value: Any, where: str, errors: list[str]) -> int:
    try:
        return percent_to_permille(value)
    except ValueError as e:
        errors.append(f"{where}: {e}")
        return 0


def _basis_points(value: Any, where: str, errors: list[str]) -> int:
    try:
        return percent_to_basis_points(value)
    except ValueError as e:
        errors.append(f"{where}: {e}")
        return 0


def _income_tax_table(
    jurisdiction: Any, model: IncomeTaxModel, errors: list[str]
) -> IncomeTaxTable | None:
    where = f"income_tax.{jurisdiction.value}"
    allowance = PersonalAllowance(
        base_amount_minor=_minor(model.personal_allowance, f"{where}.personal_allowance", errors),
        taper_start_minor=_minor(model.taper_start, f"{where}.taper_start", errors),
        taper_rate_permille=_permille(model.taper_rate, f"{where}.taper_rate", errors),
        taper_floor_minor=_minor(model.taper_floor, f"{where}.taper_floor", errors),
    )
    bands = tuple(
        Band(
            lower_minor=_minor(band.lower, f"{where}.bands[{i}].lower", errors),
            upper_minor=(
                None
                if band.upper is None
                else _minor(band.upper, f"{where}.bands[{i}].upper", errors)
            ),
            rate=_permille(band.rate, f"{where}.bands[{i}].rate", errors),
        )
        for i, band in enumerate(model.bands)
    )
    try:
        table = BandTable(bands=bands)
    except InvalidBandTable as e:
        errors.append(f"{where}.bands: {e}")
        return None
    return IncomeTaxTable(jurisdiction=jurisdiction, personal_allowance=allowance, bands=table)


def _ni_thresholds(model: NIThresholdModel, where: str, errors: list[str]) -> NIThresholdTable:
    return NIThresholdTable(
        primary_threshold_minor=_minor(model.primary_threshold, f"{where}.primary_threshold", errors),
        upper_earnings_limit_minor=_minor(
            model.upper_earnings_limit, f"{where}.upper_earnings_limit", errors
        ),
        rate_below_uel_bp=_basis_points(model.rate_below_uel, f"{where}.rate_below_uel", errors),
        rate_above_uel_bp=_basis_points(model.rate_above_uel, f"{where}.rate_above_uel", errors),
    )


def _employer_thresholds(
    model: EmployerNIModel, where: str, errors: list[str]
) -> EmployerNIThresholdTable:
    return EmployerNIThresholdTable(
        secondary_threshold_minor=_minor(
            model.secondary_threshold, f"{where}.secondary_threshold", errors
        ),
        upper_secondary_threshold_minor=_minor(
            model.upper_secondary_threshold, f"{where}.upper_secondary_threshold", errors
        ),
        rate_below_bp=_basis_points(model.rate_below, f"{where}.rate_below", errors),
        rate_above_bp=_basis_points(model.rate_above, f"{where}.rate_above", errors),
    )


def _ni_record(category: Any, model: NICategoryModel, errors: list[str]) -> NICategoryRecord:
    where = f"national_insurance.{category.value}"
    overrides: list[tuple[PayFrequency, NIThresholdTable]] = []
    for frequency in PayFrequency:
        if frequency is PayFrequency.ANNUAL:
            continue
        period_model = getattr(model, frequency.value)
        if period_model is not None:
            overrides.append(
                (frequency, _ni_thresholds(period_model, f"{where}.{frequency.value}", errors))
            )
    record = NICategoryRecord(
        category=category,
        annual=_ni_thresholds(model.annual, f"{where}.annual", errors),
        employer=_employer_thresholds(model.employer, f"{where}.employer", errors),
        period_overrides=tuple(overrides),
    )
    # Build the band tables now so a broken record fails at load time
    for tables in (record.annual, record.employer, *(t for _, t in overrides)):
        try:
            tables.band_table
        except InvalidBandTable as e:
            errors.append(f"{where}: {e}")
    return record


def load_rate_table_set_from_dict(
    data: dict[str, Any], path: Path | None = None
) -> RateTableSet:
    """Load a rate table set from a dictionary.

    Args:
        data: Dictionary containing a rate table document
        path: Optional path for error reporting

    Returns:
        Immutable RateTableSet with all figures in pence and permille

    Raises:
        InvalidRateTable: If validation or conversion fails
    """
    try:
        document = RateTableDocument.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise InvalidRateTable(
            f"Invalid rate table: {errors[0]}",
            path=path,
            errors=errors,
        )

    errors: list[str] = []
    income_tax = {}
    for jurisdiction, model in document.income_tax.items():
        table = _income_tax_table(jurisdiction, model, errors)
        if table is not None:
            income_tax[jurisdiction] = table

    national_insurance = {
        category: _ni_record(category, model, errors)
        for category, model in document.national_insurance.items()
    }

    student_loans = {
        plan: StudentLoanTerms(
            plan=plan,
            threshold_minor=_minor(model.threshold, f"student_loan.{plan.value}.threshold", errors),
            rate_permille=_permille(model.rate, f"student_loan.{plan.value}.rate", errors),
        )
        for plan, model in document.student_loan.items()
    }

    relief_rate = _permille(
        document.pension.relief_at_source_rate, "pension.relief_at_source_rate", errors
    )

    if errors:
        raise InvalidRateTable(
            f"Invalid rate table for {document.tax_year}: {errors[0]}",
            path=path,
            errors=errors,
        )

    return RateTableSet(
        tax_year=TaxYear.from_string(document.tax_year),
        income_tax=MappingProxyType(income_tax),
        national_insurance=MappingProxyType(national_insurance),
        student_loans=MappingProxyType(student_loans),
        relief_at_source_rate_permille=relief_rate,
    )


def load_rate_table_set(path: str | Path) -> RateTableSet:
    """Load a rate table set from a YAML file path.

    If the file name encodes a tax year ("2025-26.yaml") it must agree with
    the document's ``tax_year``.

    Raises:
        InvalidRateTable: If the file cannot be loaded or validation fails
    """
    path = Path(path)
    data = _parse_yaml(path)
    table_set = load_rate_table_set_from_dict(data, path=path)

    if match := _FILE_YEAR.match(path.stem):
        named = TaxYear.from_string(f"{match.group(1)}/{match.group(2)}")
        if named != table_set.tax_year:
            raise InvalidRateTable(
                f"File {path.name} holds tax year {table_set.tax_year}, expected {named}",
                path=path,
            )

    logger.debug("rate_table_loaded", path=str(path), tax_year=str(table_set.tax_year))
    return table_set


def load_rate_table_store(
    directory: str | Path | None = None, pattern: str = "*.yaml"
) -> RateTableStore:
    """Load every rate table document in a directory into a store.

    Args:
        directory: Directory to search. Defaults to the bundled tables.
        pattern: Glob pattern for matching files (default: "*.yaml")

    Raises:
        InvalidRateTable: If the directory is missing, a document is invalid,
            or two documents claim the same tax year
    """
    directory = Path(directory) if directory is not None else BUNDLED_RATE_TABLES_DIR

    if not directory.exists():
        raise InvalidRateTable(f"Directory not found: {directory}", path=directory)

    if not directory.is_dir():
        raise InvalidRateTable(f"Path is not a directory: {directory}", path=directory)

    table_sets: list[RateTableSet] = []
    seen: dict[TaxYear, Path] = {}
    for yaml_file in sorted(directory.glob(pattern)):
        if not yaml_file.is_file():
            continue
        table_set = load_rate_table_set(yaml_file)
        if table_set.tax_year in seen:
            raise InvalidRateTable(
                f"Tax year {table_set.tax_year} defined twice: "
                f"{seen[table_set.tax_year].name} and {yaml_file.name}",
                path=yaml_file,
            )
        seen[table_set.tax_year] = yaml_file
        table_sets.append(table_set)

    logger.info(
        "rate_tables_loaded",
        directory=str(directory),
        tax_years=[str(t.tax_year) for t in table_sets],
    )
    return RateTableStore(table_sets)


def validate_rate_table_yaml(path: str | Path) -> list[str]:
    """Validate a rate table YAML file and return any errors.

    Args:
        path: Path to the YAML file to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    try:
        load_rate_table_set(path)
    except InvalidRateTable as e:
        return e.errors or [str(e)]
    return []

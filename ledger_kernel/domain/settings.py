"""
LedgerSettings -- kernel-side runtime settings.

Responsibility:
    Carries the values the kernel needs from configuration: the active
    school and academic year, the code-suffix width, the report root
    allow-list, where the satellite folders live, and the seed chart.

Architecture position:
    Kernel > Domain.  Built by ``ledger_config.bridges``; the kernel never
    reads YAML itself.
"""

from dataclasses import dataclass, field

from ledger_kernel.domain.account import Account

DEFAULT_SCHOOL_ID = "SCHOOL"
DEFAULT_ACADEMIC_YEAR_ID = "YEAR"


def normalize_scope(
    school_id: str | None, academic_year_id: str | None
) -> tuple[str, str]:
    """Blank identifiers fall back to the "SCHOOL" / "YEAR" placeholders."""
    school = (school_id or "").strip() or DEFAULT_SCHOOL_ID
    year = (academic_year_id or "").strip() or DEFAULT_ACADEMIC_YEAR_ID
    return school, year


@dataclass(frozen=True)
class FolderPlacement:
    """A satellite folder: its name and the code of the account it hangs under."""

    anchor_code: str
    folder_name: str


@dataclass(frozen=True)
class LedgerSettings:
    school_id: str = DEFAULT_SCHOOL_ID
    academic_year_id: str = DEFAULT_ACADEMIC_YEAR_ID
    code_suffix_width: int = 2
    report_root_codes: tuple[str, ...] = ("1", "2", "4", "5")
    bank_folder: FolderPlacement = FolderPlacement("11", "Banks")
    cash_folder: FolderPlacement = FolderPlacement("11", "Cash Safe")
    supplier_folder: FolderPlacement = FolderPlacement("2", "Suppliers")
    default_currency: str = "EGP"
    seed_accounts: tuple[Account, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        school, year = normalize_scope(self.school_id, self.academic_year_id)
        object.__setattr__(self, "school_id", school)
        object.__setattr__(self, "academic_year_id", year)
        if self.code_suffix_width < 1:
            raise ValueError("code_suffix_width must be at least 1")

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


def _join_address(*parts: Optional[str]) -> str:
    return ", ".join(p for p in parts if p and p.strip())


@dataclass(frozen=True)
class Company:
    """Head office or branch. The hierarchy is a plain parent id."""

    company_id: int
    company_code: str
    company_name: str
    parent_company_id: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    is_head_office: bool = False
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.company_code} - {self.company_name}"

    @property
    def company_type_display(self) -> str:
        return "Head Office" if self.is_head_office else "Branch"

    @property
    def full_address(self) -> str:
        return _join_address(self.address, self.city, self.province)


@dataclass(frozen=True)
class Site:
    site_id: int
    company_id: int
    site_code: str
    site_name: str
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    manager_name: Optional[str] = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"{self.site_code} - {self.site_name}"

    @property
    def full_address(self) -> str:
        return _join_address(self.address, self.city, self.province)


class CompanyDirectory:
    """Id-based lookups over the company tree (no object back-references)."""

    def __init__(self, companies: Iterable[Company]):
        self._by_id = {c.company_id: c for c in companies}

    def get(self, company_id: Optional[int]) -> Optional[Company]:
        if company_id is None:
            return None
        return self._by_id.get(company_id)

    def parent_of(self, company_id: int) -> Optional[Company]:
        company = self.get(company_id)
        return self.get(company.parent_company_id) if company else None

    def children_of(self, company_id: int) -> list[Company]:
        return sorted(
            (c for c in self._by_id.values() if c.parent_company_id == company_id),
            key=lambda c: c.company_code,
        )

    def ancestors_of(self, company_id: int) -> list[Company]:
        """Parents from nearest to root. Stops on a broken or cyclic chain."""
        out: list[Company] = []
        seen = {company_id}
        current = self.parent_of(company_id)
        while current and current.company_id not in seen:
            out.append(current)
            seen.add(current.company_id)
            current = self.get(current.parent_company_id)
        return out

    def head_office(self, company_id: int) -> Optional[Company]:
        company = self.get(company_id)
        if company and company.is_head_office:
            return company
        for ancestor in self.ancestors_of(company_id):
            if ancestor.is_head_office:
                return ancestor
        return None

# Overview: Per-company runtime defaults consumed by the sales engine.

from __future__ import annotations

import copy
from typing import Protocol


class ConfigStore(Protocol):
    def get_config(self, company_id: int, employee_id: int | None) -> dict: ...


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class StaticConfigStore:
    """
    In-process config store: application defaults plus per-company and
    per-employee overrides registered on the instance.

    Built once by create_app() and kept in app.extensions; callers receive
    it explicitly, so tests can swap in their own instance.
    """

    def __init__(self, defaults: dict | None = None):
        self._defaults = copy.deepcopy(defaults or {})
        self._company: dict[int, dict] = {}
        self._employee: dict[tuple[int, int], dict] = {}

    @classmethod
    def from_app_config(cls, config) -> "StaticConfigStore":
        return cls({
            "pos": {"documentType": config.get("DEFAULT_DOCUMENT_TYPE", "TICKET")},
            "currencyId": config.get("DEFAULT_CURRENCY_ID", 1),
        })

    def set_company_config(self, company_id: int, overrides: dict) -> None:
        self._company[company_id] = _merge(self._company.get(company_id, {}), overrides)

    def set_employee_config(self, company_id: int, employee_id: int, overrides: dict) -> None:
        key = (company_id, employee_id)
        self._employee[key] = _merge(self._employee.get(key, {}), overrides)

    def get_config(self, company_id: int, employee_id: int | None) -> dict:
        config = _merge(self._defaults, self._company.get(company_id, {}))
        if employee_id is not None:
            config = _merge(config, self._employee.get((company_id, employee_id), {}))
        return config

"""Repository for the event catalog."""
from __future__ import annotations

from typing import Dict, List, get_args

from farmsim.core.types import SEASONS, NotificationKind
from farmsim.data.errors import DataReferenceError, DataValidationError
from farmsim.data.repositories.base import RepositoryBase
from farmsim.data.repositories.crops_repo import CropsRepository
from farmsim.domain.defs import (
    CONDITION_TYPES,
    EFFECT_TYPES,
    ChoiceDef,
    ConditionDef,
    EffectDef,
    EventDef,
    ForeshadowDef,
)

_EVENT_KINDS = ("climate", "market", "advisor", "regulatory")
_NOTIFICATION_KINDS = get_args(NotificationKind)

# Parameter name -> expected python type, per condition/effect type.
_CONDITION_PARAMS: Dict[str, Dict[str, type | tuple[type, ...]]] = {
    "min_year": {"year": int},
    "max_year": {"year": int},
    "season": {"season": str},
    "season_not": {"season": str},
    "cash_below": {"amount": int},
    "cash_above": {"amount": int},
    "has_crop": {},
    "avg_nitrogen_below": {"level": (int, float)},
    "any_perennial_planted": {},
    "no_debt": {},
    "has_flag": {"flag": str},
    "random": {"probability": (int, float)},
}
_CONDITION_OPTIONAL: Dict[str, Dict[str, type]] = {"has_crop": {"crop_id": str}}

_EFFECT_PARAMS: Dict[str, Dict[str, type | tuple[type, ...]]] = {
    "modify_cash": {"amount": int},
    "modify_moisture_all": {"amount": (int, float)},
    "modify_nitrogen_all": {"amount": (int, float)},
    "modify_yield_modifier": {"crop_id": str, "multiplier": (int, float), "duration_days": int},
    "modify_price_modifier": {"crop_id": str, "multiplier": (int, float), "duration_days": int},
    "modify_irrigation_cost": {"multiplier": (int, float), "duration_days": int},
    "restrict_watering": {"duration_days": int},
    "set_flag": {"flag": str, "value": bool},
    "add_notification": {"message": str, "notification_kind": str},
    "cancel_pending_event": {"event_id": str},
}


class EventsRepository(RepositoryBase[EventDef]):
    """Loads the event catalog and validates triggers, choices and effects."""

    def __init__(self, base_path=None, *, crops_repo: CropsRepository | None = None) -> None:
        super().__init__("events.json", base_path)
        self._crops_repo = crops_repo

    def _build(self, raw: dict[str, object]) -> Dict[str, EventDef]:
        events: Dict[str, EventDef] = {}
        for event_id, payload in raw.items():
            context = f"event '{event_id}'"
            data = self._require_mapping(payload, context)
            self._assert_exact_fields(
                data,
                {"kind", "title", "description", "preconditions", "priority", "cooldown_days", "foreshadowing", "choices"},
                context,
                optional_keys={"max_occurrences", "tags"},
            )
            kind = self._require_str(data["kind"], f"{context} kind")
            if kind not in _EVENT_KINDS:
                raise DataValidationError(f"{context} kind must be one of {list(_EVENT_KINDS)}.")
            max_occurrences = data.get("max_occurrences")
            if max_occurrences is not None:
                max_occurrences = self._require_int(max_occurrences, f"{context} max_occurrences")
            choices = self._parse_choices(data["choices"], context)
            if not choices:
                raise DataValidationError(f"{context} must declare at least one choice.")
            tags_raw = data.get("tags", [])
            if not isinstance(tags_raw, list) or not all(isinstance(tag, str) for tag in tags_raw):
                raise DataValidationError(f"{context} tags must be a list of strings.")

            events[event_id] = EventDef(
                id=event_id,
                kind=kind,  # type: ignore[arg-type]
                title=self._require_str(data["title"], f"{context} title"),
                description=self._require_str(data["description"], f"{context} description"),
                preconditions=self._parse_conditions(data["preconditions"], context),
                priority=self._require_int(data["priority"], f"{context} priority"),
                cooldown_days=self._require_int(data["cooldown_days"], f"{context} cooldown_days"),
                foreshadowing=self._parse_foreshadowing(data["foreshadowing"], context),
                choices=choices,
                max_occurrences=max_occurrences,
                tags=list(tags_raw),
            )
        self._validate_references(events)
        return events

    def _parse_conditions(self, raw: object, context: str) -> List[ConditionDef]:
        if not isinstance(raw, list):
            raise DataValidationError(f"{context} preconditions must be a list.")
        conditions: List[ConditionDef] = []
        for index, entry in enumerate(raw):
            entry_ctx = f"{context} preconditions[{index}]"
            mapping = self._require_mapping(entry, entry_ctx)
            cond_type = self._require_str(mapping.get("type"), f"{entry_ctx} type")
            if cond_type not in CONDITION_TYPES:
                raise DataValidationError(f"{entry_ctx} has unknown condition type '{cond_type}'.")
            params = {key: value for key, value in mapping.items() if key != "type"}
            self._check_params(
                params, _CONDITION_PARAMS[cond_type], _CONDITION_OPTIONAL.get(cond_type, {}), entry_ctx
            )
            if cond_type in ("season", "season_not") and params["season"] not in SEASONS:
                raise DataValidationError(f"{entry_ctx} season must be one of {list(SEASONS)}.")
            if cond_type == "random" and not 0.0 <= float(params["probability"]) <= 1.0:
                raise DataValidationError(f"{entry_ctx} probability must be within 0-1.")
            conditions.append(ConditionDef(type=cond_type, data=params))
        return conditions

    def _parse_foreshadowing(self, raw: object, context: str) -> ForeshadowDef:
        mapping = self._require_mapping(raw, f"{context} foreshadowing")
        self._assert_exact_fields(
            mapping, {"signal", "lead_days"}, f"{context} foreshadowing", optional_keys={"reliability"}
        )
        lead_days = self._require_int(mapping["lead_days"], f"{context} foreshadowing lead_days")
        if lead_days < 0:
            raise DataValidationError(f"{context} foreshadowing lead_days must be non-negative.")
        reliability = self._require_number(mapping.get("reliability", 1.0), f"{context} foreshadowing reliability")
        if not 0.0 <= reliability <= 1.0:
            raise DataValidationError(f"{context} foreshadowing reliability must be within 0-1.")
        return ForeshadowDef(
            signal=self._require_str(mapping["signal"], f"{context} foreshadowing signal"),
            lead_days=lead_days,
            reliability=reliability,
        )

    def _parse_choices(self, raw: object, context: str) -> List[ChoiceDef]:
        if not isinstance(raw, list):
            raise DataValidationError(f"{context} choices must be a list.")
        choices: List[ChoiceDef] = []
        seen: set[str] = set()
        for index, entry in enumerate(raw):
            choice_ctx = f"{context} choices[{index}]"
            mapping = self._require_mapping(entry, choice_ctx)
            self._assert_exact_fields(
                mapping, {"id", "label", "description", "effects"}, choice_ctx, optional_keys={"requires_cash"}
            )
            choice_id = self._require_str(mapping["id"], f"{choice_ctx} id")
            if choice_id in seen:
                raise DataValidationError(f"{choice_ctx} duplicates choice id '{choice_id}'.")
            seen.add(choice_id)
            requires_cash = mapping.get("requires_cash")
            if requires_cash is not None:
                requires_cash = self._require_int(requires_cash, f"{choice_ctx} requires_cash")
            choices.append(
                ChoiceDef(
                    id=choice_id,
                    label=self._require_str(mapping["label"], f"{choice_ctx} label"),
                    description=self._require_str(mapping["description"], f"{choice_ctx} description"),
                    effects=self._parse_effects(mapping["effects"], choice_ctx),
                    requires_cash=requires_cash,
                )
            )
        return choices

    def _parse_effects(self, raw: object, context: str) -> List[EffectDef]:
        if not isinstance(raw, list):
            raise DataValidationError(f"{context} effects must be a list.")
        effects: List[EffectDef] = []
        for index, entry in enumerate(raw):
            effect_ctx = f"{context} effects[{index}]"
            mapping = self._require_mapping(entry, effect_ctx)
            effect_type = self._require_str(mapping.get("type"), f"{effect_ctx} type")
            if effect_type not in EFFECT_TYPES:
                raise DataValidationError(f"{effect_ctx} has unknown effect type '{effect_type}'.")
            params = {key: value for key, value in mapping.items() if key != "type"}
            self._check_params(params, _EFFECT_PARAMS[effect_type], {}, effect_ctx)
            if effect_type == "add_notification" and params["notification_kind"] not in _NOTIFICATION_KINDS:
                raise DataValidationError(f"{effect_ctx} has unknown notification kind.")
            effects.append(EffectDef(type=effect_type, data=params))
        return effects

    @staticmethod
    def _check_params(
        params: dict[str, object],
        required: Dict[str, type | tuple[type, ...]],
        optional: Dict[str, type],
        context: str,
    ) -> None:
        missing = set(required) - set(params)
        unknown = set(params) - set(required) - set(optional)
        if missing or unknown:
            raise DataValidationError(
                f"{context} has schema issues (missing: {sorted(missing)}; unknown: {sorted(unknown)})."
            )
        for key, value in params.items():
            expected = required.get(key) or optional[key]
            if isinstance(value, bool) and expected is not bool:
                raise DataValidationError(f"{context} {key} has the wrong type.")
            if not isinstance(value, expected):
                raise DataValidationError(f"{context} {key} has the wrong type.")

    def _validate_references(self, events: Dict[str, EventDef]) -> None:
        for event in events.values():
            for condition in event.preconditions:
                crop_id = condition.data.get("crop_id")
                if crop_id is not None and self._crops_repo is not None and not self._crops_repo.has(str(crop_id)):
                    raise DataReferenceError(f"event '{event.id}' references unknown crop '{crop_id}'.")
            for choice in event.choices:
                for effect in choice.effects:
                    if effect.type == "cancel_pending_event" and effect.data["event_id"] not in events:
                        raise DataReferenceError(
                            f"event '{event.id}' cancels unknown event '{effect.data['event_id']}'."
                        )
                    crop_id = effect.data.get("crop_id")
                    if (
                        crop_id not in (None, "*")
                        and self._crops_repo is not None
                        and not self._crops_repo.has(str(crop_id))
                    ):
                        raise DataReferenceError(f"event '{event.id}' references unknown crop '{crop_id}'.")

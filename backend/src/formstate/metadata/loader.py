"""Load form definitions from YAML files.

A form definition file looks like:

    form: signup
    displayName: Sign up
    mode: onBlur
    resetOnSubmit: false
    fields:
      - name: email
        initialValue: ""
        validation:
          required: true
          email: true
          custom: uniqueEmail      # name registered with @validator
      - name: age
        validation:
          min: 18
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from formstate.form.config import FormConfig
from formstate.validation.registry import CustomValidatorRegistry
from formstate.validation.types import ValidationMode, ValidationRule


@dataclass
class FieldDefinition:
    name: str
    display_name: str
    initial_value: Any = None
    rule: ValidationRule | None = None


@dataclass
class FormDefinition:
    name: str
    display_name: str
    fields: list[FieldDefinition] = field(default_factory=list)
    mode: ValidationMode = ValidationMode.ON_CHANGE
    reset_on_submit: bool = False
    validate_on_mount: bool = False
    source: Path | None = None

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_config(self) -> FormConfig:
        """Build the FormConfig for a controller of this form."""
        return FormConfig(
            initial_values={f.name: f.initial_value for f in self.fields},
            validation_rules={f.name: f.rule for f in self.fields if f.rule is not None},
            mode=self.mode,
            reset_on_submit=self.reset_on_submit,
            validate_on_mount=self.validate_on_mount,
        )


class FormLoader:
    """Loads form definitions from a YAML file or a directory of them."""

    def __init__(self, path: Path):
        self.path = path
        self.forms: dict[str, FormDefinition] = {}

    def load_all(self) -> None:
        """Load every form found at ``path``."""
        if self.path.is_dir():
            for yaml_file in sorted(self.path.glob("*.yaml")):
                self._load_file(yaml_file)
        else:
            self._load_file(self.path)

    def get_form(self, name: str) -> FormDefinition | None:
        return self.forms.get(name)

    def list_forms(self) -> list[str]:
        return list(self.forms.keys())

    def _load_file(self, yaml_file: Path) -> None:
        with open(yaml_file) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"{yaml_file}: invalid YAML: {e}") from e
        if not isinstance(data, dict) or "form" not in data:
            raise ValueError(f"{yaml_file}: missing 'form' key")

        form = self._resolve_form(data, yaml_file)
        if form.name in self.forms:
            raise ValueError(f"{yaml_file}: duplicate form '{form.name}'")
        self.forms[form.name] = form

    def _resolve_form(self, data: dict, source: Path) -> FormDefinition:
        name = data["form"]

        fields: list[FieldDefinition] = []
        seen: set[str] = set()
        for field_data in data.get("fields", []):
            field_def = self._resolve_field(field_data, source)
            if field_def.name in seen:
                raise ValueError(
                    f"{source}: field '{field_def.name}' is defined more than once"
                )
            seen.add(field_def.name)
            fields.append(field_def)

        try:
            mode = ValidationMode(data.get("mode", ValidationMode.ON_CHANGE.value))
        except ValueError:
            raise ValueError(
                f"{source}: unknown mode '{data.get('mode')}'. Expected one of: "
                + ", ".join(m.value for m in ValidationMode)
            ) from None

        return FormDefinition(
            name=name,
            display_name=data.get("displayName", self._to_display_name(name)),
            fields=fields,
            mode=mode,
            reset_on_submit=data.get("resetOnSubmit", False),
            validate_on_mount=data.get("validateOnMount", False),
            source=source,
        )

    def _resolve_field(self, data: dict, source: Path) -> FieldDefinition:
        if "name" not in data:
            raise ValueError(f"{source}: field without a 'name'")
        name = data["name"]

        rule = None
        validation_data = data.get("validation")
        if validation_data:
            try:
                rule = ValidationRule.from_dict(
                    validation_data, resolve_custom=CustomValidatorRegistry.get
                )
            except (ValueError, TypeError, re.error) as e:
                raise ValueError(f"{source}: field '{name}': {e}") from e

        return FieldDefinition(
            name=name,
            display_name=data.get("displayName", self._to_display_name(name)),
            initial_value=data.get("initialValue"),
            rule=rule,
        )

    def _to_display_name(self, name: str) -> str:
        """Convert camelCase or snake_case to Title Case."""
        result = []
        for i, char in enumerate(name):
            if char == "_":
                result.append(" ")
            elif char.isupper() and i > 0 and name[i - 1] != "_":
                result.append(" ")
                result.append(char)
            else:
                result.append(char)
        return "".join(result).title()

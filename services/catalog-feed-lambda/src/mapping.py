"""
Attribute mapping between Merchant Center fields and Commerce attributes.

The mapping document is written from the destination's point of view
("Merchant Center expects X, our catalog calls it Y"). Forward lookups
(destination to source) are dictionary hits; reverse lookups scan the
small per-field table.
"""

from typing import Optional

from models import AttributeMappingConfig


class AttributeMapper:
    """Translates field names and enum values in both directions."""

    def __init__(self, config: AttributeMappingConfig):
        self.config = config

    def field_name_to_destination(self, source_attr_name: str) -> str:
        """Merchant Center field for a Commerce attribute name, or the name unchanged."""
        for destination_field, source_attr in self.config.field_mappings.items():
            if source_attr == source_attr_name:
                return destination_field
        return source_attr_name

    def field_name_to_source(self, destination_field: str) -> str:
        """Commerce attribute name for a Merchant Center field, or the field unchanged."""
        return self.config.field_mappings.get(destination_field, destination_field)

    def value_to_destination(
        self, source_value: Optional[str], destination_field: str
    ) -> Optional[str]:
        """
        Merchant Center enum value for a Commerce value.

        Falls back to the lowercased source value, since Merchant Center
        enum values are lowercase identifiers (``new``, ``female``, ``adult``).
        """
        if source_value is None or source_value == "":
            return None
        source_value = str(source_value)
        for destination_value, mapped in self._values_for(destination_field).items():
            if mapped == source_value:
                return destination_value
        return source_value.lower()

    def value_to_source(
        self, destination_value: Optional[str], destination_field: str
    ) -> Optional[str]:
        """Commerce value for a Merchant Center enum value, or the value unchanged."""
        if destination_value is None:
            return None
        return self._values_for(destination_field).get(destination_value, destination_value)

    def _values_for(self, destination_field: str) -> dict[str, str]:
        return self.config.value_mappings.get(destination_field, {})

"""Jinja2 templates for Shadow Sensor Skill responses.

This package contains Jinja2 templates used to phrase the outcome of a
measurement query. Templates are loaded dynamically based on the skill's
actions.

Template Naming Convention:
    Templates follow the pattern: {action_name}.j2

Example:
    - measurement_query.j2 -> handles MEASUREMENT_QUERY actions

Available Templates:
    - measurement_query.j2: Speaks a validated reading with its unit
    - location_not_found.j2: No sensor is mapped to the location
    - no_data.j2: The shadow has no value for the measurement
    - unusual_reading.j2: The value is outside its plausible range
    - device_not_found.j2: The device has no shadow
    - reading_failed.j2: Any other failure while reading

"""

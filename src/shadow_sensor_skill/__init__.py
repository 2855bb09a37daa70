"""Shadow Sensor Skill package.

Device shadow synchronization for environmental sensor devices and the
voice skill that answers questions about their readings.

Main Components:
    - TelemetryReporter: Reports full sensor snapshots to the device shadow
    - ActuationReconciler: Applies desired-state deltas to the switch output
    - DeviceRuntime: Single-threaded event loop hosting both on the device
    - SensorSkill: Answers spoken measurement queries from shadow data
    - SkillConfig / DeviceConfig: Static configuration models
    - main: CLI entry point, lambda_function: AWS Lambda entry point

Example Usage:
    Ask for a reading from the command line:
    ```
    uv run shadow-sensor-skill garage temperature --config /path/to/config.toml
    ```

    Or import programmatically:
    ```python
    from shadow_sensor_skill.sensor_skill import SensorSkill
    from shadow_sensor_skill.config import SkillConfig
    ```
"""

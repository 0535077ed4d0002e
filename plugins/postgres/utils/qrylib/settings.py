"""
Query library for the pg.setting* metric keys.

See: https://www.postgresql.org/docs/current/view-pg-settings.html
"""

SETTING_DISCOVERY_QUERY = """
    SELECT
        name AS setting,
        unit AS unit,
        category AS category,
        short_desc AS description,
        context AS context,
        vartype AS vartype
    FROM pg_settings
"""

SETTING_QUERY = "SELECT setting, vartype FROM pg_settings WHERE name = %s"

from relsynth.renderer.sql_renderer import SQLRenderer, format_value, quote_identifier

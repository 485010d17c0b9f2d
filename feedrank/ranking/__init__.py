"""Pure scoring, preference and weight-table logic."""

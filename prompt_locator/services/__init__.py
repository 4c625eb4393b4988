"""Services package: data model and the prompt location engine."""

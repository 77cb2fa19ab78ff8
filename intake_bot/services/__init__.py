"""Service layer for the Renovation Intake Bot."""

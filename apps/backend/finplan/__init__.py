"""FinPlan backend: personal finance tracking with recurring-transaction projections."""

"""CoachDesk: single-coach dashboard for students, attendance, payments and notes."""

"""lockdiary - a PIN-locked personal diary."""

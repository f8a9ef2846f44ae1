"""Domain model and reconciliation logic for group/member/message sync."""

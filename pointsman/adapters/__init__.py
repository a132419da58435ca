"""Default collaborators (see POINTSMAN["MESSAGE_SENDER"] and ["APPROVER_VALIDATOR"])."""

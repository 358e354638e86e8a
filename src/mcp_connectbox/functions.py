"""Function ids understood by the Connect Box getter/setter endpoints."""

LOGIN = 15
LOGOUT = 16
FORWARDS = 121
EDIT_FORWARDS = 122
LAN_TABLE = 123

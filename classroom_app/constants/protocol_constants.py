"""Event names and user-facing messages of the WebSocket protocol."""

# Inbound
EVT_CREATE_ROOM: str = "create_room"
EVT_JOIN_ROOM: str = "join_room"
EVT_TOGGLE_ATTENTION: str = "toggle_attention"
EVT_KICK_STUDENT: str = "kick_student"
EVT_UPDATE_STATUS: str = "update_status"
EVT_REQUEST_MODEL: str = "request_model"
EVT_STUDENT_MODEL_DATA: str = "student_model_data"
EVT_LEAVE_ROOM: str = "leave_room"

# Outbound
EVT_ROOM_CREATED: str = "room_created"
EVT_JOINED_ROOM: str = "joined_room"
EVT_ROOM_STATE_UPDATE: str = "room_state_update"
EVT_ATTENTION_MODE_CHANGE: str = "attention_mode_change"
EVT_KICKED: str = "kicked"
EVT_ERROR: str = "error"
EVT_STUDENT_FEATURED_DATA: str = "student_featured_data"
EVT_TRANSFER_TIMEOUT: str = "transfer_timeout"
EVT_ROOM_CLOSED: str = "room_closed"
EVT_LEFT_ROOM: str = "left_room"

ERR_INVALID_ROOM_CODE: str = "Invalid Room Code"
ERR_MALFORMED_MESSAGE: str = "Malformed message"
ERR_ALREADY_HOSTING: str = "You are already hosting a room"
ERR_NOT_ROOM_TEACHER: str = "You are not the teacher of this room"
ERR_STUDENT_NOT_FOUND: str = "Student not found in this room"
ERR_TRANSFER_PENDING: str = "A transfer is already in progress"
ERR_ROLE_FORBIDDEN: str = "{event} is not allowed for {role}"
ERR_TRANSFER_TIMEOUT: str = "{name} did not respond in time"

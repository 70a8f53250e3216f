"""Static metadata describing the classroom coordinator."""

APP_NAME = "Classroom Coordinator"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "Classroom Coordinator lets a teacher open an ephemeral classroom, follow the live "
    "status of every student who joins with the room code, and pull a student's work on demand."
)

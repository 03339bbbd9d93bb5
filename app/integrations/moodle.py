from __future__ import annotations

import logging
from typing import Any

import requests

from app.core.errors import IntegrationError

logger = logging.getLogger(__name__)

REST_PATH = "/webservice/rest/server.php"
STUDENT_ROLE_ID = 5
# Avisos de Moodle que invalidan una matricula aunque la respuesta sea 200
CRITICAL_WARNINGS = ("usernotexist", "coursenotexist", "enrolnotpermitted")


class MoodleClient:
    """Cliente minimo del API REST de Moodle (usuarios y matricula manual)."""

    def __init__(
        self,
        base_url: str | None,
        token: str | None,
        timeout: float = 10.0,
        student_role_id: int = STUDENT_ROLE_ID,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token or ""
        self.timeout = timeout
        self.student_role_id = student_role_id
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "MoodleClient":
        return cls(
            base_url=config.get("MOODLE_URL"),
            token=config.get("MOODLE_TOKEN"),
            timeout=config.get("MOODLE_TIMEOUT", 10.0),
            student_role_id=config.get("MOODLE_STUDENT_ROLE_ID", STUDENT_ROLE_ID),
        )

    def is_configured(self) -> bool:
        return bool(self.base_url and self.token)

    def _call(self, wsfunction: str, params: dict[str, Any] | None = None) -> Any:
        data = {
            "wstoken": self.token,
            "wsfunction": wsfunction,
            "moodlewsrestformat": "json",
        }
        data.update(params or {})
        logger.info("Moodle call: %s (timeout: %ss)", wsfunction, self.timeout)
        try:
            response = self.session.post(f"{self.base_url}{REST_PATH}", data=data, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.Timeout as exc:
            logger.warning("Moodle timeout after %ss for %s", self.timeout, wsfunction)
            raise IntegrationError(f"Timeout llamando a Moodle ({wsfunction})", "moodle") from exc
        except requests.exceptions.RequestException as exc:
            logger.error("Moodle request failed for %s: %s", wsfunction, exc)
            raise IntegrationError(f"Error de comunicacion con Moodle ({wsfunction})", "moodle") from exc
        except ValueError as exc:
            raise IntegrationError(f"Respuesta no JSON de Moodle ({wsfunction})", "moodle") from exc

        if isinstance(payload, dict) and payload.get("exception"):
            message = payload.get("message") or payload.get("errorcode") or "error desconocido"
            raise IntegrationError(f"Moodle rechazo {wsfunction}: {message}", "moodle")
        return payload

    def find_user_by_email(self, email: str) -> int | None:
        users = self._call(
            "core_user_get_users_by_field",
            {"field": "email", "values[0]": email},
        )
        if isinstance(users, list) and users:
            return int(users[0]["id"])
        return None

    def create_user(self, email: str, nombres: str, apellidos: str) -> int:
        # El correo hace de username; Moodle genera la contrasena
        created = self._call(
            "core_user_create_users",
            {
                "users[0][username]": email.lower(),
                "users[0][firstname]": nombres,
                "users[0][lastname]": apellidos,
                "users[0][email]": email,
                "users[0][auth]": "manual",
                "users[0][createpassword]": "1",
            },
        )
        if not isinstance(created, list) or not created or not created[0].get("id"):
            raise IntegrationError("Moodle no devolvio un ID de usuario valido", "moodle")
        return int(created[0]["id"])

    def is_enrolled(self, moodle_course_id: int, moodle_user_id: int) -> bool:
        users = self._call("core_enrol_get_enrolled_users", {"courseid": moodle_course_id})
        if not isinstance(users, list):
            return False
        return any(int(user.get("id", 0)) == moodle_user_id for user in users)

    def enrol_user(self, moodle_course_id: int, moodle_user_id: int) -> None:
        result = self._call(
            "enrol_manual_enrol_users",
            {
                "enrolments[0][roleid]": self.student_role_id,
                "enrolments[0][userid]": moodle_user_id,
                "enrolments[0][courseid]": moodle_course_id,
            },
        )
        warnings = result.get("warnings", []) if isinstance(result, dict) else []
        for warning in warnings:
            code = warning.get("warningcode", "")
            if code in CRITICAL_WARNINGS:
                raise IntegrationError(f"Moodle no permitio la matricula: {code}", "moodle")
            logger.warning("Moodle enrol warning %s: %s", code, warning.get("message", ""))

    def enroll(self, moodle_course_id: int, email: str, nombres: str, apellidos: str) -> int:
        """Resuelve o crea el usuario y lo matricula como estudiante.

        Devuelve el id de usuario en Moodle. Si ya estaba matriculado no
        repite la llamada de matricula.
        """
        moodle_user_id = self.find_user_by_email(email)
        if moodle_user_id is None:
            moodle_user_id = self.create_user(email, nombres, apellidos)
            logger.info("Moodle user %s created for %s", moodle_user_id, email)
        if self.is_enrolled(moodle_course_id, moodle_user_id):
            logger.info("Moodle user %s already enrolled in course %s", moodle_user_id, moodle_course_id)
            return moodle_user_id
        self.enrol_user(moodle_course_id, moodle_user_id)
        logger.info("Moodle user %s enrolled in course %s", moodle_user_id, moodle_course_id)
        return moodle_user_id

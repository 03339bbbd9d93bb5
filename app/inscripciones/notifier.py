from __future__ import annotations

from enum import Enum
import logging

from app.core.errors import AppError, IntegrationError, NotFoundError
from app.core.models import Curso, EstadoMatriculaMoodle, Inscripcion, Person

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    PROPAGATE = "PROPAGATE"
    LOG_AND_SWALLOW = "LOG_AND_SWALLOW"


class EnrollmentNotifier:
    """Reparte la matricula confirmada a Moodle y a la invitacion de Telegram.

    Se invoca despues del commit que fija ``matricula=True``; ningun fallo
    aqui revierte la matricula. Cada paso tiene su politica de fallo.
    """

    def __init__(
        self,
        repository,
        platform_client,
        invite_sender,
        platform_policy: FailurePolicy = FailurePolicy.PROPAGATE,
        invite_policy: FailurePolicy = FailurePolicy.LOG_AND_SWALLOW,
    ) -> None:
        self.repository = repository
        self.platform_client = platform_client
        self.invite_sender = invite_sender
        self.platform_policy = platform_policy
        self.invite_policy = invite_policy

    def on_matriculated(self, inscripcion_id: int) -> None:
        inscripcion = self.repository.get(Inscripcion, inscripcion_id)
        if inscripcion is None:
            logger.warning("Inscripcion %s not found, nothing to notify", inscripcion_id)
            return

        platform_error = None
        try:
            self._dispatch("moodle", self._enroll_in_platform, inscripcion, self.platform_policy)
        except IntegrationError as exc:
            # La invitacion se envia igualmente antes de propagar
            platform_error = exc
        self._dispatch("telegram", self._send_invite, inscripcion, self.invite_policy)
        if platform_error is not None:
            raise platform_error

    def resend_invite(self, inscripcion_id: int) -> bool:
        inscripcion = self.repository.get(Inscripcion, inscripcion_id)
        if inscripcion is None or not inscripcion.matricula:
            logger.info("Inscripcion %s missing or not matriculated, invite not resent", inscripcion_id)
            return False
        try:
            return self._send_invite(inscripcion)
        except Exception as exc:
            logger.warning("Resending Telegram invite failed for inscripcion %s: %s", inscripcion_id, exc)
            return False

    def retry_platform_enrollment(self, inscripcion_id: int) -> bool:
        inscripcion = self.repository.get(Inscripcion, inscripcion_id)
        if inscripcion is None:
            raise NotFoundError("Inscripcion")
        if not inscripcion.matricula:
            logger.info("Inscripcion %s is not matriculated, Moodle retry skipped", inscripcion_id)
            return False
        return self._dispatch("moodle", self._enroll_in_platform, inscripcion, FailurePolicy.PROPAGATE)

    def _dispatch(self, step: str, action, inscripcion: Inscripcion, policy: FailurePolicy) -> bool:
        try:
            return action(inscripcion)
        except Exception as exc:
            if policy == FailurePolicy.LOG_AND_SWALLOW:
                logger.warning("Step %s failed for inscripcion %s (ignored): %s", step, inscripcion.id, exc)
                return False
            logger.error(
                "MANUAL FOLLOW-UP REQUIRED: step %s failed for matriculated inscripcion %s: %s",
                step,
                inscripcion.id,
                exc,
            )
            if isinstance(exc, IntegrationError):
                exc.inscripcion_id = inscripcion.id
                raise
            raise IntegrationError(f"Fallo en la integracion {step}", step, inscripcion.id) from exc

    def _enroll_in_platform(self, inscripcion: Inscripcion) -> bool:
        if not self.platform_client.is_configured():
            logger.info("Moodle not configured, skipping enrollment of inscripcion %s", inscripcion.id)
            return False
        mapping = self.repository.course_mapping(inscripcion.curso_id)
        if mapping is None:
            logger.info("Curso %s has no active Moodle mapping, skipping", inscripcion.curso_id)
            return False

        persona = self.repository.get(Person, inscripcion.persona_id)
        try:
            moodle_user_id = self.platform_client.enroll(
                mapping.moodle_course_id,
                persona.correo,
                persona.nombres,
                persona.apellidos,
            )
        except Exception as exc:
            self._record_platform_result(inscripcion.id, EstadoMatriculaMoodle.ERROR, notas=str(exc) or type(exc).__name__)
            raise
        self._record_platform_result(
            inscripcion.id,
            EstadoMatriculaMoodle.MATRICULADO,
            moodle_user_id=moodle_user_id,
            moodle_username=persona.correo.lower(),
        )
        return True

    def _record_platform_result(self, inscripcion_id: int, estado: EstadoMatriculaMoodle, **values) -> None:
        try:
            self.repository.save_moodle_result(inscripcion_id, estado, **values)
        except AppError as exc:
            logger.warning("Could not record Moodle result for inscripcion %s: %s", inscripcion_id, exc)

    def _send_invite(self, inscripcion: Inscripcion) -> bool:
        if not self.invite_sender.is_configured():
            logger.info("Mailer not configured, skipping Telegram invite for inscripcion %s", inscripcion.id)
            return False
        grupo = self.repository.telegram_group(inscripcion.curso_id)
        if grupo is None:
            logger.info("Curso %s has no active Telegram group, skipping invite", inscripcion.curso_id)
            return False

        persona = self.repository.get(Person, inscripcion.persona_id)
        curso = self.repository.get(Curso, inscripcion.curso_id)
        self.invite_sender.send_invite(
            grupo.enlace_invitacion,
            persona.correo,
            nombre=persona.full_name,
            curso=curso.nombre_curso,
            fecha_inicio=curso.fecha_inicio_curso.isoformat(),
        )
        return True

from __future__ import annotations

import logging

from ..config_store import ConfigurationSnapshot
from ..context import PipelineContext
from ..errors import ConfirmationDeclined, ValidationError

logger = logging.getLogger(__name__)


class GatherConfigurationStep:
    step_id = "USER_INPUT_COMPLETE"

    def run(self, ctx: PipelineContext) -> None:
        if ctx.snapshot is not None:
            # Saved after a confirmed prompt in an earlier run.
            logger.info("Using saved configuration for %s", ctx.snapshot.target_disk)
            return

        answers = ctx.settings.answers
        if answers:
            try:
                snapshot = ConfigurationSnapshot.from_answers(answers).validate()
            except (TypeError, ValueError) as e:
                raise ValidationError([f"Invalid preseeded answers: {e}"]) from e
            if snapshot.missing_secrets():
                user_pw, root_pw = ctx.prompter.ask_secrets(snapshot.username)
                snapshot = snapshot.with_secrets(user_password=user_pw, root_password=root_pw)
        else:
            snapshot = ctx.prompter.gather()

        if ctx.settings.assume_yes:
            ctx.prompter.summary(snapshot)
            logger.warning("Destructive confirmation skipped (assume_yes); %s will be erased", snapshot.target_disk)
        elif not ctx.prompter.confirm_destructive(snapshot):
            raise ConfirmationDeclined("Confirmation failed. Aborting installation.")

        ctx.config_store.save(snapshot)
        ctx.snapshot = snapshot
        logger.info("Configuration accepted: %s", snapshot.redacted())

import argparse
import logging
import sys

from workspace_tools.project_drive.config import load_config
from workspace_tools.project_drive.form_source import fetch_latest_submission, load_submission
from workspace_tools.project_drive.notification import PrintTransport, SmtpTransport, build_confirmation_email
from workspace_tools.project_drive.storage_drive import DriveService
from workspace_tools.project_drive.storage_local import LocalDriveService
from workspace_tools.project_drive.template_clone import clone_tree, resolve_folder

logger = logging.getLogger(__name__)


class WorkspaceResult:
    """Outcome of a successful workspace creation."""

    def __init__(self, folder_id, folder_url, progress):
        self.folder_id = folder_id
        self.folder_url = folder_url
        self.progress = progress


def create_project_workspace(config, storage, submission, transport=None):
    """Create the project folder for a submission and fill it from the template.

    The project folder is looked up by name under the destination folder and
    only created when missing. The template tree is then copied into it,
    which is NOT safe to repeat for the same folder: a second run copies
    every file again. Errors are logged and re-raised before any email is
    sent.

    Args:
        config: WorkspaceConfig with the destination and template folder ids
        storage: Storage service holding both folders
        submission: FormSubmission being processed
        transport: Notification transport, or None to skip the email

    Returns:
        WorkspaceResult with the project folder id, its URL and the clone progress
    """
    logger.info("Starting project folder creation process")
    logger.info("Project ID: %s", submission.identifier)
    logger.info("Project Name: %s", submission.display_name)
    logger.info("Email: %s", submission.email)
    logger.info("New Folder Name: %s", submission.folder_name)

    try:
        project_folder_id = resolve_folder(storage, config.destination_folder_id, submission.folder_name)
        folder_url = storage.folder_url(project_folder_id)

        progress = clone_tree(
            storage,
            config.template_folder_id,
            project_folder_id,
            submission.folder_name,
            token=config.placeholder,
        )

        if transport is not None:
            subject, body = build_confirmation_email(submission, folder_url, config.subject_template, config.body_template)
            logger.info("Sending confirmation email")
            transport.send(submission.email, subject, body)
    except Exception as e:
        logger.error("Error creating project workspace for %r: %s", submission.folder_name, e)
        raise

    logger.info("Project folder creation completed successfully")
    return WorkspaceResult(project_folder_id, folder_url, progress)


def create_storage(config, api_token=None):
    """Build the storage service named by the configuration."""
    if config.storage_backend == "local":
        return LocalDriveService(config.storage_root)

    token = api_token or config.secret(config.storage_token_env)
    if not token:
        error_msg = "A Drive API token is required (--api-token or storage.token_env)"
        raise ValueError(error_msg)
    return DriveService(token)


def create_transport(config, no_email_notification=False):
    """Build the notification transport, printing the email when sending is disabled."""
    if no_email_notification:
        return PrintTransport()
    if not config.smtp_host:
        logger.warning("email.smtp_host is not configured: the confirmation email will be printed, not sent")
        return PrintTransport()
    if not config.sender:
        error_msg = "email.sender is required when email.smtp_host is set"
        raise ValueError(error_msg)
    return SmtpTransport(config.smtp_host, config.smtp_port, config.sender, config.secret(config.password_env))


def main():
    """Command line entry point."""
    parser = argparse.ArgumentParser(description="Create a project workspace from the template folder for an intake form submission")
    parser.add_argument("-c", "--config", required=True, help="YAML file with the workspace configuration")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--data", help="JSON or YAML file containing the submission")
    source.add_argument("--form-id", help="Google Form id to read the latest response from (overrides form.form_id)")
    parser.add_argument("--api-token", help="OAuth bearer token for the Drive and Forms APIs")
    parser.add_argument("--no-email-notification", action="store_true", help="Print the confirmation email instead of sending it")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)

        if args.data:
            submission = load_submission(args.data)
        else:
            form_id = args.form_id or config.form_id
            if not form_id:
                parser.error("one of --data or --form-id is required when form.form_id is not configured")
            token = args.api_token or config.secret(config.form_token_env) or config.secret(config.storage_token_env)
            if not token:
                error_msg = "A Forms API token is required (--api-token or form.token_env)"
                raise ValueError(error_msg)
            submission = fetch_latest_submission(form_id, token, config.question_ids)

        storage = create_storage(config, args.api_token)
        transport = create_transport(config, args.no_email_notification)

        result = create_project_workspace(config, storage, submission, transport)
        print(f"Successfully created project workspace: {result.folder_url}")
        print(f"Files copied: {result.progress.files_copied}, folders created: {result.progress.folders_created}")

    except Exception as e:
        print(f"Error: {e}")
        progress = getattr(e, "progress", None)
        if progress is not None:
            print(f"Partial workspace left in place ({progress.files_copied} files, {progress.folders_created} folders written)")
        sys.exit(1)


if __name__ == "__main__":
    main()

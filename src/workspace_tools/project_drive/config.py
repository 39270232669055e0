"""Loading of the workspace configuration file.

Example ``workspace.yaml``::

    destination_folder_id: https://drive.google.com/drive/folders/0ANQ5Ex6IvvzsUk9PVAxxxxxxxx
    template_folder_id: 1t9heIEB3EZI4IrZjlzk2C8lUT3I00W7e
    placeholder: "[TEMPLATE]"
    storage:
      backend: drive
      token_env: DRIVE_API_TOKEN
    form:
      form_id: 1FAIpQLSxxxxxxxxxxxxxxxxxxxxxxxx
      question_ids: [1a2b3c4d, 5e6f7a8b]
    email:
      smtp_host: smtp.gmail.com
      smtp_port: 465
      sender: pmo@example.org
      password_env: SMTP_PASSWORD
"""

import os

import yaml

from workspace_tools.project_drive.storage_drive import get_id_from_url
from workspace_tools.project_drive.template_clone import DEFAULT_PLACEHOLDER

STORAGE_BACKENDS = ("drive", "local")


def _folder_id(value):
    # Accept a pasted Drive URL as well as a bare id or a local path
    value = str(value).strip()
    if value.startswith(("http://", "https://")):
        folder_id = get_id_from_url(value)
        if folder_id is None:
            error_msg = f"Could not extract a folder id from URL: {value}"
            raise ValueError(error_msg)
        return folder_id
    return value


class WorkspaceConfig:
    """Fixed settings of one intake-form-to-workspace setup."""

    def __init__(
        self,
        destination_folder_id,
        template_folder_id,
        placeholder=DEFAULT_PLACEHOLDER,
        storage_backend="drive",
        storage_root=None,
        storage_token_env=None,
        form_id=None,
        question_ids=None,
        form_token_env=None,
        smtp_host=None,
        smtp_port=465,
        sender=None,
        password_env=None,
        subject_template=None,
        body_template=None,
    ):
        self.destination_folder_id = destination_folder_id
        self.template_folder_id = template_folder_id
        self.placeholder = placeholder
        self.storage_backend = storage_backend
        self.storage_root = storage_root
        self.storage_token_env = storage_token_env
        self.form_id = form_id
        self.question_ids = question_ids or []
        self.form_token_env = form_token_env
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.sender = sender
        self.password_env = password_env
        self.subject_template = subject_template
        self.body_template = body_template

    @classmethod
    def from_mapping(cls, data):
        """Build a config from the parsed YAML document.

        Args:
            data: Dictionary as loaded from the configuration file

        Returns:
            WorkspaceConfig
        """
        if not isinstance(data, dict):
            error_msg = "Configuration must be a mapping"
            raise ValueError(error_msg)

        for key in ("destination_folder_id", "template_folder_id"):
            if not data.get(key):
                error_msg = f"Missing required configuration key: {key}"
                raise ValueError(error_msg)

        placeholder = data.get("placeholder", DEFAULT_PLACEHOLDER)
        if not placeholder:
            error_msg = "placeholder must not be empty"
            raise ValueError(error_msg)

        storage = data.get("storage") or {}
        backend = storage.get("backend", "drive")
        if backend not in STORAGE_BACKENDS:
            error_msg = f"Unknown storage backend {backend!r}, expected one of {', '.join(STORAGE_BACKENDS)}"
            raise ValueError(error_msg)
        if backend == "local" and not storage.get("root"):
            error_msg = "storage.root is required for the local backend"
            raise ValueError(error_msg)

        form = data.get("form") or {}
        email = data.get("email") or {}

        return cls(
            destination_folder_id=_folder_id(data["destination_folder_id"]),
            template_folder_id=_folder_id(data["template_folder_id"]),
            placeholder=placeholder,
            storage_backend=backend,
            storage_root=storage.get("root"),
            storage_token_env=storage.get("token_env"),
            form_id=form.get("form_id"),
            question_ids=form.get("question_ids"),
            form_token_env=form.get("token_env"),
            smtp_host=email.get("smtp_host"),
            smtp_port=int(email.get("smtp_port", 465)),
            sender=email.get("sender"),
            password_env=email.get("password_env"),
            subject_template=email.get("subject_template"),
            body_template=email.get("body_template"),
        )

    def secret(self, env_name):
        """Return the value of environment variable ``env_name``, or None."""
        return os.environ.get(env_name) if env_name else None


def load_config(config_file):
    """Load the workspace configuration from a YAML file.

    Args:
        config_file: Path to the YAML configuration file

    Returns:
        WorkspaceConfig
    """
    if not os.path.exists(config_file):
        error_msg = f"Configuration file does not exist: {config_file}"
        raise FileNotFoundError(error_msg)

    with open(config_file, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return WorkspaceConfig.from_mapping(data)

"""Question set loader service with caching and validation.

This module loads question set definitions from YAML files, validates them
against Pydantic schemas, and caches the results for performance.
"""

from pathlib import Path
from functools import lru_cache
from typing import Optional
import yaml
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.question_set import QuestionSet
from app.logging_config import get_logger

logger = get_logger(__name__)


class QuestionSetNotFoundError(Exception):
    """Raised when a question set file is not found."""
    pass


class QuestionSetValidationError(Exception):
    """Raised when a question set fails validation."""
    pass


class QuestionSetLoader:
    """Service for loading and caching question set definitions.

    Question sets are loaded from YAML files in the question_sets/ directory
    and validated against Pydantic schemas. Results are cached per loader.
    """

    def __init__(self, question_sets_dir: Optional[str] = None):
        """Initialize question set loader.

        Args:
            question_sets_dir: Path to question set directory
                (defaults to question_sets/ in the project root)
        """
        if question_sets_dir is None:
            project_root = Path(__file__).parent.parent.parent
            question_sets_dir = project_root / "question_sets"

        self.question_sets_dir = Path(question_sets_dir)

        if not self.question_sets_dir.exists():
            logger.warning(f"Question set directory not found: {self.question_sets_dir}")

    @lru_cache(maxsize=32)
    def load_question_set(self, question_set_id: str) -> QuestionSet:
        """Load and validate a question set from a YAML file.

        Args:
            question_set_id: Identifier (YAML filename without .yaml)

        Returns:
            Validated QuestionSet object

        Raises:
            QuestionSetNotFoundError: If the file doesn't exist
            QuestionSetValidationError: If the file fails parsing or validation

        Example:
            >>> loader = QuestionSetLoader()
            >>> qs = loader.load_question_set("lecture_evaluation")
            >>> qs.get_dimension("gender").options
            ['male', 'female', 'other', 'preferNotToSay']
        """
        yaml_path = self.question_sets_dir / f"{question_set_id}.yaml"

        if not yaml_path.exists():
            logger.error(f"Question set file not found: {yaml_path}")
            raise QuestionSetNotFoundError(
                f"Question set '{question_set_id}' not found at {yaml_path}"
            )

        try:
            with open(yaml_path, 'r', encoding='utf-8') as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error for {question_set_id}: {e}")
            raise QuestionSetValidationError(
                f"Invalid YAML in question set '{question_set_id}': {e}"
            )
        except OSError as e:
            logger.error(f"Error reading question set file {yaml_path}: {e}")
            raise QuestionSetValidationError(
                f"Error reading question set '{question_set_id}': {e}"
            )

        if not isinstance(raw_data, dict):
            raise QuestionSetValidationError(
                f"Question set '{question_set_id}' must be a mapping at the top level"
            )

        try:
            question_set = QuestionSet(**raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for question set {question_set_id}: {e}")
            raise QuestionSetValidationError(
                f"Validation failed for question set '{question_set_id}': {e}"
            )

        logger.info(
            f"Successfully loaded question set: {question_set_id} "
            f"(version {question_set.metadata.version})"
        )
        return question_set

    def list_question_sets(self) -> list[str]:
        """List all available question set IDs.

        Returns:
            Sorted list of IDs (filenames without .yaml extension)
        """
        if not self.question_sets_dir.exists():
            return []

        ids = [f.stem for f in self.question_sets_dir.glob("*.yaml")]
        logger.debug(f"Found {len(ids)} question sets: {ids}")
        return sorted(ids)

    def clear_cache(self):
        """Clear the question set cache."""
        self.load_question_set.cache_clear()
        logger.info("Question set cache cleared")


# Global singleton instance
_loader_instance: Optional[QuestionSetLoader] = None


def get_question_set_loader() -> QuestionSetLoader:
    """Get global QuestionSetLoader instance.

    Creates the singleton on first call using settings.question_sets_dir.

    Returns:
        Global QuestionSetLoader instance
    """
    global _loader_instance
    if _loader_instance is None:
        _loader_instance = QuestionSetLoader(get_settings().question_sets_dir)
    return _loader_instance


def get_active_question_set() -> QuestionSet:
    """Load the question set configured for the analysis pipeline.

    Returns:
        QuestionSet named by settings.question_set_id
    """
    return get_question_set_loader().load_question_set(get_settings().question_set_id)

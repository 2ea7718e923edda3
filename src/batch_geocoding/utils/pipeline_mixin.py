"""Pipeline execution mixin.

Runs a list of named steps, feeding each step the previous step's result,
and prints a status banner per step.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable
from abc import abstractmethod

from colorama import Fore, Style


class PipelineMixin:
    """Mixin for runners that use multi-step pipeline processing.

    Usage:
        class MyPipeline(PipelineMixin):
            MODALITY = 'geocoding'

            def _load_pipeline(self, content):
                return [
                    ('Parse File', read_rows, {'content': content}),
                    ('Validate Records', process_raw_data, {}),
                ]
    """

    # Must be set by the class using this mixin
    MODALITY: str

    @abstractmethod
    def _load_pipeline(self, **pipeline_kwargs: Any) -> Iterable[tuple[str, Callable, dict[str, Any]]]:
        """Define the pipeline steps.

        Returns:
            List of tuples: (step_name, function, kwargs)
        """
        ...

    def _execute_pipeline(self, progress: bool = True, **pipeline_kwargs: Any) -> dict[str, Any]:
        """Execute the pipeline.

        Args:
            progress: Whether to print progress messages (default: True)
            **pipeline_kwargs: Additional parameters passed to _load_pipeline()

        Returns:
            Mapping of step name to that step's result
        """
        pipeline = self._load_pipeline(**pipeline_kwargs)
        results: dict[str, Any] = {}
        result = None

        for name, func, kwargs in pipeline:
            try:
                if result is not None:
                    result = func(result, **kwargs)
                else:
                    result = func(**kwargs)
                results[name] = result
                if progress:
                    self._log_step_success(name)
            except Exception as e:
                if progress:
                    self._log_step_failure(name, e)
                raise

        return results

    def _log_step_success(self, step_name: str) -> None:
        """Print success message for a pipeline step."""
        max_len = len('Validate Records')  # Longest step name
        padding = max_len - len(step_name) + 4

        modality = getattr(self, 'MODALITY', 'Pipeline').title()
        print(f'{modality} -- {step_name} {"-" * padding}> {Fore.GREEN}Complete{Style.RESET_ALL}')

    def _log_step_failure(self, step_name: str, error: Exception) -> None:
        """Print failure message for a pipeline step."""
        max_len = len('Validate Records')
        padding = max_len - len(step_name) + 4

        modality = getattr(self, 'MODALITY', 'Pipeline').title()
        print(f'{modality} -- {step_name} {"-" * padding}> {Fore.RED}Failed{Style.RESET_ALL}: {error}')

from .models import ProbeResult, ProbeVerdict


class ReportPresenter:
    """Renders a probe verdict as the pass/fail report."""

    def render(self, image: str, verdict: ProbeVerdict) -> str:
        stop = "PASSED" if verdict.handles_graceful_stop else "FAILED"
        restart = "PASSED" if verdict.handles_restart else "FAILED"
        command = "YES" if verdict.command_was_specified else "NO"
        return "\n".join(
            [
                f"image-checker results for '{image}':",
                f"Test graceful stop: {stop}",
                f"Test start after stopping: {restart}",
                f"Command was specified: {command}",
            ]
        )

    def render_result(self, result: ProbeResult) -> str:
        return self.render(result.image, result.verdict)

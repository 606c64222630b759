from pathlib import Path
from typing import Sequence, Union

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from dmarc_report_converter.feedback import Feedback
from dmarc_report_converter.token_codec import encode

DEFAULT_TEMPLATE = Path(__file__).resolve().parent / "templates" / "report.html"


def load_template(template_path: Union[str, Path] = DEFAULT_TEMPLATE) -> Template:
    template_path = Path(template_path)
    env = Environment(
        loader=FileSystemLoader(str(template_path.parent)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    return env.get_template(template_path.name)


def render_reports(template: Template, reports: Sequence[Feedback]) -> str:
    """Render reports with ``string`` bound to the enumeration encoder.

    Templates write ``{{ string(report.policy_published.p) }}`` to output
    the canonical token of an enumerated field.
    """
    return template.render(reports=list(reports), string=encode)

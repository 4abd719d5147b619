from .json_report import write_json_report
from .junit import render_junit, write_junit_report
from .markdown import render_markdown_report, write_markdown_report

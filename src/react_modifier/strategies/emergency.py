"""Emergency creator: the last tier, writes a generic page or component to disk."""

import logging
import re

from react_modifier.models import ModificationScope, StrategyResult
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_COMPONENT_ADDITION, write_change

logger = logging.getLogger(__name__)

EMERGENCY_STOPWORDS = {"the", "and", "create", "add", "make", "new", "for"}
EMERGENCY_PAGE_KEYWORDS = ("page", "about", "contact", "dashboard", "home")
DEFAULT_NAME = "NewComponent"
MAX_NAME_SUFFIX = 50


def emergency_component_name(prompt: str) -> str:
    """First prompt word longer than two letters that is not a stopword."""
    for word in prompt.split():
        clean = re.sub(r"[^a-zA-Z]", "", word)
        if len(clean) > 2 and clean.lower() not in EMERGENCY_STOPWORDS:
            return clean[0].upper() + clean[1:]
    return DEFAULT_NAME


def is_page_request(prompt: str) -> bool:
    lower = prompt.lower()
    return any(keyword in lower for keyword in EMERGENCY_PAGE_KEYWORDS)


def render_page_template(name: str) -> str:
    lower = name.lower()
    return f"""import React from 'react';

const {name} = () => {{
  return (
    <div className="min-h-screen bg-gray-50">
      <div className="container mx-auto px-4 py-8">
        <h1 className="text-4xl font-bold text-gray-900 mb-8">
          {name}
        </h1>
        <div className="bg-white rounded-lg shadow-md p-6">
          <p className="text-lg text-gray-600 mb-4">
            Welcome to the {name} page.
          </p>
          <div className="grid grid-cols-1 md:grid-cols-2 gap-6">
            <div className="bg-blue-50 p-4 rounded-lg">
              <h2 className="text-xl font-semibold text-blue-900 mb-2">Section 1</h2>
              <p className="text-blue-700">This is the first section of your {lower} page.</p>
            </div>
            <div className="bg-green-50 p-4 rounded-lg">
              <h2 className="text-xl font-semibold text-green-900 mb-2">Section 2</h2>
              <p className="text-green-700">This is the second section of your {lower} page.</p>
            </div>
          </div>
        </div>
        <div className="mt-8 text-center">
          <button className="bg-blue-500 hover:bg-blue-600 text-white font-bold py-2 px-4 rounded">
            Get Started
          </button>
        </div>
      </div>
    </div>
  );
}};

export default {name};
"""


def render_component_template(name: str) -> str:
    return f"""import React from 'react';

interface {name}Props {{
  title?: string;
  className?: string;
  children?: React.ReactNode;
}}

const {name}: React.FC<{name}Props> = ({{
  title = '{name}',
  className = '',
  children,
}}) => {{
  return (
    <div className={{`{name.lower()} bg-white border border-gray-200 rounded-lg shadow-sm p-6 ${{className}}`}}>
      <div className="flex items-center justify-between mb-4">
        <h3 className="text-lg font-semibold text-gray-900">{{title}}</h3>
        <div className="w-2 h-2 bg-green-500 rounded-full"></div>
      </div>
      <div className="space-y-4">
        <p className="text-gray-600">
          This is the {name} component. It is ready to be customized.
        </p>
        {{children && <div className="mt-4">{{children}}</div>}}
      </div>
    </div>
  );
}};

export default {name};
"""


def render_template(name: str, is_page: bool) -> str:
    return render_page_template(name) if is_page else render_component_template(name)


class EmergencyCreator:
    """Synthesizes a file with no LLM and no project analysis."""

    approach = APPROACH_COMPONENT_ADDITION

    def _free_path(self, folder: str, name: str, session: SessionContext) -> tuple[str, str]:
        """Pick a path that does not overwrite an existing file."""
        candidate_name = name
        for suffix in range(2, MAX_NAME_SUFFIX + 2):
            relative_path = f"src/{folder}/{candidate_name}.tsx"
            if not session.resolve(relative_path).exists():
                return relative_path, candidate_name
            candidate_name = f"{name}{suffix}"
        return f"src/{folder}/{name}.tsx", name

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        session.progress("Emergency: creating a component directly (final fallback)")
        name = emergency_component_name(prompt)
        if scope.component is not None and scope.component.name:
            name = scope.component.name
        is_page = is_page_request(prompt)
        kind = "page" if is_page else "component"
        relative_path, name = self._free_path("pages" if is_page else "components", name, session)

        try:
            write_change(
                session,
                relative_path,
                render_template(name, is_page),
                self.approach,
                f"Emergency created {kind}: {name}",
                reasoning="Emergency fallback component creation",
                created=True,
                components=[name],
            )
        except (OSError, ValueError) as e:
            logger.error("Emergency creation failed: %s", e)
            return StrategyResult.failure(
                self.approach,
                f"Emergency creation failed: {e}",
                details={"emergency": True},
            )

        return StrategyResult(
            success=True,
            approach=self.approach,
            added_files=[relative_path],
            reasoning=(
                f"Emergency component creation successful: created {name} {kind} "
                "using direct file operations"
            ),
            details={"emergency": True, "kind": kind, "name": name},
        )

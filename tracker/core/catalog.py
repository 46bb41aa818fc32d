"""
Reference catalog: the faculty's strategic-plan hierarchy.

Departments → Goals → Objectives (→ optional Sub-Objectives). The catalog is
read-only reference data; reports point into it by id and never own a copy.

Usage:
    from tracker.core.catalog import DEFAULT_CATALOG

    DEFAULT_CATALOG.goal_id_for("obj-1-1")             # "goal-1"
    DEFAULT_CATALOG.objectives_for_goal("goal-2", search="research")
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Department:
    id: str
    name: str


@dataclass(frozen=True)
class Goal:
    id: str
    code: str
    title: str


@dataclass(frozen=True)
class Objective:
    id: str
    goal_id: str
    code: str
    title: str


@dataclass(frozen=True)
class SubObjective:
    """Third level of the hierarchy, used by catalogs that split objectives."""
    id: str
    objective_id: str
    goal_id: str
    code: str
    title: str


@dataclass(frozen=True)
class ReferenceCatalog:
    """Immutable lookup tables over the goal/objective hierarchy."""

    departments: tuple[Department, ...]
    goals: tuple[Goal, ...]
    objectives: tuple[Objective, ...]
    sub_objectives: tuple[SubObjective, ...] = ()
    _index: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index = self._index
        for dept in self.departments:
            index[("department", dept.id)] = dept
        for goal in self.goals:
            index[("goal", goal.id)] = goal
        for obj in self.objectives:
            index[("objective", obj.id)] = obj
        for sub in self.sub_objectives:
            index[("sub_objective", sub.id)] = sub

    # ── Lookups ──────────────────────────────────────────────────────────

    def department(self, department_id: str) -> Department | None:
        return self._index.get(("department", department_id))

    def department_name(self, department_id: str) -> str:
        dept = self.department(department_id)
        return dept.name if dept else "Unknown"

    def goal(self, goal_id: str) -> Goal | None:
        return self._index.get(("goal", goal_id))

    def objective(self, objective_id: str) -> Objective | None:
        return self._index.get(("objective", objective_id))

    def sub_objective(self, sub_objective_id: str) -> SubObjective | None:
        return self._index.get(("sub_objective", sub_objective_id))

    def goal_id_for(self, node_id: str) -> str | None:
        """Return the goal id an objective or sub-objective belongs to."""
        node = self.objective(node_id) or self.sub_objective(node_id)
        return node.goal_id if node else None

    def objectives_for_goal(self, goal_id: str, search: str = "") -> list[Objective]:
        """Objectives under a goal, filtered by title (case-insensitive) or code."""
        term = (search or "").strip()
        lowered = term.lower()
        return [
            obj for obj in self.objectives
            if obj.goal_id == goal_id
            and (not term or lowered in obj.title.lower() or term in obj.code)
        ]

    def goals_in_order(self, goal_ids) -> list[Goal]:
        """Catalog-ordered goals restricted to ``goal_ids``; unknown ids are skipped."""
        wanted = set(goal_ids)
        return [g for g in self.goals if g.id in wanted]


# ── Faculty data ─────────────────────────────────────────────────────────────

DEPARTMENTS = (
    Department("dept-1", "Business Communications Unit"),
    Department("dept-2", "Department of Accounting"),
    Department("dept-3", "Department of Business Administration"),
    Department("dept-4", "Department of Business Economics"),
    Department("dept-5", "Department of Commerce"),
    Department("dept-6", "Department of Decision Sciences"),
    Department("dept-7", "Department of Entrepreneurship"),
    Department("dept-8", "Department of Estate Management and Valuation"),
    Department("dept-9", "Department of Finance"),
    Department("dept-10", "Department of Human Resource Management"),
    Department("dept-11", "Department of Information Technology"),
    Department("dept-12", "Department of Marketing"),
    Department("dept-13", "Department of Public Administration"),
    Department("dept-14", "Legal Studies Unit"),
)

GOALS = (
    Goal("goal-1", "1", "Academic Excellence"),
    Goal("goal-2", "2", "Research, Innovation and Partnerships"),
    Goal("goal-3", "3", "Human Capital Development"),
    Goal("goal-4", "4", "Infrastructure & Digital Transformation"),
    Goal("goal-5", "5", "Financial Resilience"),
    Goal("goal-6", "6", "Outstanding Student Experience"),
    Goal("goal-7", "7", "National Development, Global Presence and Sustainability"),
)

OBJECTIVES = (
    # Goal 1: Academic Excellence
    Objective("obj-1-1", "goal-1", "1.1", "Expand Accessibility to higher education"),
    Objective("obj-1-2", "goal-1", "1.2", "Enhance the quality and relevance of academic programs"),
    Objective("obj-1-3", "goal-1", "1.3",
              "Encourage more learner-centered active learning through improved delivery "
              "and assessment methods"),
    Objective("obj-1-4", "goal-1", "1.4",
              "Develop and implement formal feedback mechanisms to support informed decision "
              "making and ensure timely corrective and developmental actions"),
    # Goal 2: Research, Innovation and Partnerships
    Objective("obj-2-1", "goal-2", "2.1", "Strengthen staff research output and impact"),
    Objective("obj-2-2", "goal-2", "2.2", "Strengthen student research output and impact"),
    Objective("obj-2-3", "goal-2", "2.3",
              "Expand industry networks and partnerships to improve research culture"),
    # Goal 3: Human Capital Development
    Objective("obj-3-1", "goal-3", "3.1", "Recruit and Retain high Caliber Staff"),
    Objective("obj-3-2", "goal-3", "3.2", "Develop high caliber staff"),
    Objective("obj-3-3", "goal-3", "3.3", "Promote balanced workload"),
    Objective("obj-3-4", "goal-3", "3.4", "Strengthen the non-academic and supporting staff"),
    Objective("obj-3-5", "goal-3", "3.5", "Promote continuous development of non-academic staff"),
    Objective("obj-3-6", "goal-3", "3.6",
              "Create supportive departmental culture that emphasizes teamwork, knowledge "
              "sharing and work-life balance"),
    # Goal 4: Infrastructure & Digital Transformation
    Objective("obj-4-1", "goal-4", "4.1",
              "Ensure adequate physical and technological infrastructure at disposal"),
    Objective("obj-4-2", "goal-4", "4.2", "Maintain and regularly upgrade digital infrastructure"),
    Objective("obj-4-3", "goal-4", "4.3",
              "Enhance the functionality and accessibility of the Department's digital "
              "platforms (website, LMS, online resource-sharing systems) to support "
              "students, staff, and stakeholders"),
    Objective("obj-4-4", "goal-4", "4.4",
              "Introduce incremental improvements in departmental digitalization to improve "
              "administrative and academic workflows"),
    Objective("obj-4-5", "goal-4", "4.5",
              "Ensure timely technical support and preventive maintenance for departmental "
              "facilities to minimize disruptions"),
    Objective("obj-4-6", "goal-4", "4.6",
              "Develop workspaces to ensure a smooth and calm academic environment within "
              "departments"),
    # Goal 5: Financial Resilience
    Objective("obj-5-1", "goal-5", "5.1", "Enhance and diversify revenue streams"),
    Objective("obj-5-2", "goal-5", "5.2",
              "Attract, manage, and account for self-generated funds through executive "
              "education and consultancy services"),
    Objective("obj-5-3", "goal-5", "5.3",
              "Strengthen collaboration with alumni, corporations, and development partners "
              "to secure sponsorships and endowments for departmental activities"),
    Objective("obj-5-4", "goal-5", "5.4",
              "Explore partnerships with government agencies, NGOs, and international "
              "organizations for project-based or grant-funded initiatives aligned with "
              "departmental expertise"),
    Objective("obj-5-5", "goal-5", "5.5", "Strengthen financial planning and revenue utilization"),
    # Goal 6: Outstanding Student Experience
    Objective("obj-6-1", "goal-6", "6.1", "Enhance Global Exposure for students"),
    Objective("obj-6-2", "goal-6", "6.2",
              "Develop graduates with a balanced skill pool and enhance their employability skills"),
    Objective("obj-6-3", "goal-6", "6.3",
              "Support Students' Professional Development and encourage them to pursue "
              "higher education"),
    Objective("obj-6-4", "goal-6", "6.4", "Strengthen student support"),
    Objective("obj-6-5", "goal-6", "6.5",
              "Strengthen Alumni Associations and get its involvement in students' activities "
              "and Provide support for Alumni members"),
    Objective("obj-6-6", "goal-6", "6.6",
              "Encourage lifelong learning by cultivating curiosity, adaptability, and "
              "continuous self-development among students"),
    Objective("obj-6-7", "goal-6", "6.7",
              "Promote holistic growth while strengthening staff-student relationships"),
    # Goal 7: National Development, Global Presence and Sustainability
    Objective("obj-7-1", "goal-7", "7.1",
              "Ensure all the programmes and the department initiatives are directed towards "
              "promoting responsible management education"),
    Objective("obj-7-2", "goal-7", "7.2",
              "Promote social responsibility and community engagement to address local challenges"),
    Objective("obj-7-3", "goal-7", "7.3", "Enhance the department's global visibility and presence"),
    Objective("obj-7-4", "goal-7", "7.4",
              "Build partnerships with regional and international stakeholders to expand "
              "reach and influence"),
    Objective("obj-7-5", "goal-7", "7.5", "Strengthen Institutional Platforms and Networks"),
)

DEFAULT_CATALOG = ReferenceCatalog(
    departments=DEPARTMENTS,
    goals=GOALS,
    objectives=OBJECTIVES,
)

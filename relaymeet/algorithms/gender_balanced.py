from relaymeet import utils
from relaymeet.algorithms import TeamBalancer, register
from relaymeet.models import Athlete, Team


@register
class GenderBalanced(TeamBalancer):
    """
    Greedy, single-pass balancer that never trades athletes across genders.

    Each gender is distributed on its own: team sizes for that gender differ
    by at most one, and within those size limits each athlete goes to the team
    with the lowest talent score for that gender. Randomness only decides which
    athletes of equal tier end up where.
    """

    def __init__(self):
        super().__init__()

    def balance(self, athletes: list[Athlete], teams: list[Team]) -> None:

        # running talent score per team index, per gender
        scores = [{gender: 0 for gender in utils.GENDERS} for _ in teams]

        for gender in utils.GENDERS:
            group = [a for a in athletes if a.gender == gender]
            self._assign_gender_group(group, gender, teams, scores)

    def _assign_gender_group(
        self,
        group: list[Athlete],
        gender: str,
        teams: list[Team],
        scores: list[dict[str, int]],
    ) -> None:
        """
        Places every athlete of one gender, strongest tier first.

        Args:
            group: Athletes of a single gender.
            gender: The group's gender.
            teams: Teams to append to.
            scores: Running talent scores, updated in place.
        """
        if not group:
            return

        ordered = []
        for tier in utils.TIER_WEIGHTS:
            ordered.extend(utils.shuffled(a for a in group if a.tier == tier))

        base_size, extra = divmod(len(group), len(teams))
        counts = [0] * len(teams)

        def priority(i):
            return (scores[i][gender], sum(scores[i].values()), i)

        for athlete in ordered:

            # fill every team up to the base size before handing out extras
            candidates = [i for i, count in enumerate(counts) if count < base_size]
            if not candidates:
                extras_given = sum(1 for count in counts if count > base_size)
                if extras_given >= extra:
                    break
                candidates = [i for i, count in enumerate(counts) if count == base_size]

            selected = min(candidates, key=priority)
            teams[selected].athletes.append(athlete)
            counts[selected] += 1
            scores[selected][gender] += utils.TIER_WEIGHTS[athlete.tier]

            self._notify(
                "athlete_assigned",
                {
                    "athlete": athlete.id,
                    "team": teams[selected].id,
                    "gender_score": scores[selected][gender],
                },
            )

from django.urls import path

from voting import views_ballots, views_health, views_results

urlpatterns = [
    path("healthz", views_health.healthz, name="healthz"),
    path("readyz", views_health.readyz, name="readyz"),
    path("elections/<int:election_id>/votes/", views_ballots.vote_cast, name="vote-cast"),
    path("elections/<int:election_id>/ballot/", views_ballots.election_ballot, name="election-ballot"),
    path(
        "elections/<int:election_id>/positions/<int:position_id>/ballot/",
        views_ballots.position_ballot,
        name="position-ballot",
    ),
    path("elections/<int:election_id>/progress/", views_ballots.voting_progress, name="voting-progress"),
    path("elections/<int:election_id>/winners/", views_results.election_winners, name="election-winners"),
    path("elections/<int:election_id>/analytics/", views_results.election_analytics, name="election-analytics"),
    path("elections/<int:election_id>/turnout/", views_results.election_turnout, name="election-turnout"),
    path("positions/<int:position_id>/leaderboard/", views_results.position_leaderboard, name="position-leaderboard"),
    path("candidates/<int:candidate_id>/", views_ballots.candidate_detail, name="candidate-detail"),
    path("candidates/<int:candidate_id>/scorecard/", views_results.candidate_scorecard, name="candidate-scorecard"),
    path("candidates/<int:candidate_id>/disqualify/", views_ballots.candidate_disqualify, name="candidate-disqualify"),
    path("candidates/<int:candidate_id>/withdraw/", views_ballots.candidate_withdraw, name="candidate-withdraw"),
    path("applications/<int:application_id>/promote/", views_ballots.application_promote, name="application-promote"),
    path(
        "applications/<int:application_id>/withdraw/",
        views_ballots.application_withdraw,
        name="application-withdraw",
    ),
    path("receipts/verify/", views_ballots.receipt_verify, name="receipt-verify"),
]

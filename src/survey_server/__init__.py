"""survey_server — FastAPI adapter over the survey_core SDK.

Routes translate HTTP requests into ``SurveyService`` calls; identity
arrives in headers set by a trusted API gateway.
"""

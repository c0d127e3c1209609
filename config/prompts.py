"""Prompt templates for the LLM-backed analyzers.

Templates use ``str.format`` placeholders; literal braces are doubled.
"""

PROFILE_ANALYSIS_PROMPT = """
Analyze this participant's comprehensive profile and provide deep behavioral insights:

Profile Data: {participant_data}

Provide a detailed behavioral analysis in JSON format with:

1. behavioralProfile: {{
  communicationStyle: string (verbal, visual, interactive, analytical),
  decisionMakingProcess: string (analytical, intuitive, collaborative, impulsive),
  informationProcessing: string (detail-oriented, big-picture, sequential, random),
  socialInteraction: string (extroverted, introverted, ambivert, situational),
  changeAdaptability: string (early-adopter, cautious, resistant, selective),
  motivationDrivers: string[],
  learningStyle: string (visual, auditory, kinesthetic, reading-writing)
}}
2. personalityTraits: {{
  bigFive: {{ openness, conscientiousness, extraversion, agreeableness, neuroticism }} (each 1-100),
  dominantTraits: string[],
  communicationPreferences: string[],
  workStyle: string[]
}}
3. motivationalFactors: {{ intrinsicMotivators, extrinsicMotivators, decisionInfluencers, valueAlignment }} (string[] each)
4. decisionMakingStyle: {{ primaryStyle, informationGathering, riskAssessment, timeOrientation, stakeholderConsideration }} (strings)
5. communicationPreferences: {{ preferredChannels: string[], communicationTone, feedbackStyle, responsiveness, clarificationNeeds }}
6. brandAffinityPatterns: {{ brandLoyalty, brandSwitchingTriggers: string[], influencerImpact, brandDiscoveryMethods: string[], valueBasedPurchasing: string[] }}
7. purchaseDecisionFactors: {{ primaryFactors: string[], researchDepth, socialInfluence, impulsivityLevel, budgetConsciousness }}
8. contentConsumptionBehavior: {{ preferredFormats: string[], attentionSpan, consumptionTiming: string[], devicePreferences: string[], sharingBehavior }}
9. adaptabilityScore: number (1-100, higher = more adaptable)
10. influenceFactors: string[] (authority, peers, experts, data, emotions)
11. riskTolerance: string (low, medium, high, contextual)
12. innovationAdoption: string (innovator, early-adopter, early-majority, late-majority, laggard)
13. socialEngagementLevel: number (1-10)
14. feedbackQuality: number (1-100, predicted feedback quality)
15. responseReliability: number (1-100, predicted response consistency)
16. engagementPrediction: number (1-100, predicted engagement level)
17. confidenceScore: number (1-100, confidence in analysis)

Base your analysis on observable patterns in the data. Be specific and actionable.
"""

MATCH_SCORE_PROMPT = """
Generate a comprehensive matching score for this participant:

Participant Profile: {profile}
Behavioral Analysis: {analysis}
Matching Criteria: {criteria}
Campaign Context: {campaign}

Provide a detailed matching analysis in JSON format with:

1. matchScore: number (1-100, higher = better match)
2. confidence: number (1-100, confidence in the match)
3. matchReasons: string[] (specific reasons for the match score)
4. behavioralInsights: {{
  strengths: string[], considerations: string[], recommendations: string[], riskFactors: string[]
}}
5. segmentClassification: string (target market segment)
6. engagementPrediction: number (1-100, predicted engagement level)
7. personalityProfile: {{
  traits: string[], communicationStyle: string, decisionMakingStyle: string, motivationFactors: string[]
}}
8. predictedPerformance: {{
  feedbackQuality: number (1-100), completionRate: number (1-100),
  responseTime: number (1-100), engagement: number (1-100)
}}

Consider demographics, psychographics, behavioral patterns, campaign requirements,
and historical performance patterns.
"""

CRITERIA_RECOMMENDATION_PROMPT = """
Based on the campaign requirements and historical data, generate optimal matching criteria:

Campaign Requirements: {requirements}
Target Audience: {target_audience}
Industry: {industry}
Historical Performance: {history}

Respond in JSON with three keys:

"recommendedCriteria": {{
  "demographics": {{ "ageRange": [min, max], "genders": [], "locations": {{ "countries": [], "states": [], "cities": [] }},
                    "incomeRange": [min, max], "education": [], "employment": [] }},
  "behavioral": {{ "interests": [], "values": [], "lifestyle": [], "purchasingBehavior": [], "mediaConsumption": [],
                  "techSavviness": [], "decisionMakingStyle": [], "socialEngagement": [], "brandAffinity": [] }},
  "psychographic": {{ "personality": [], "motivations": [], "attitudes": [], "opinions": [], "riskTolerance": [],
                     "innovationAdoption": [], "communicationStyle": [] }},
  "campaignSpecific": {{ "industry": "{industry}", "productCategory": "", "targetAudience": "", "campaignGoals": [],
                        "requiredExperience": [], "contentTypes": [], "expectedEngagement": "" }},
  "qualityRequirements": {{ "minFeedbackQuality": 75, "minResponseReliability": 80, "minEngagementLevel": 70,
                           "maxWarningCount": 2, "requiredVerificationStatus": true }}
}},
"expectedResults": {{ "participantCount": 50, "qualityScore": 85, "diversityScore": 75, "costEstimate": 2500,
                     "timeToComplete": "48 hours", "expectedEngagement": "high" }},
"alternativeOptions": [ {{ "name": "", "description": "", "tradeoffs": "", "criteria": {{}}, "expectedResults": {{}} }} ]

Offer "Broader Reach", "Quality Focus" and "Diversity Optimized" alternatives.
Ensure criteria are specific, measurable, and aligned with the target audience.
"""

LEARNING_PROMPT = """
Analyze this campaign feedback to improve future matching:

Campaign: {campaign}
Participant Feedback: {feedback}

Provide learning insights in JSON format:
{{
  "matchingAccuracy": number (1-100),
  "participantSatisfaction": number (1-100),
  "feedbackQuality": number (1-100),
  "improvementSuggestions": string[],
  "criteriaAdjustments": {{ "strengthen": string[], "weaken": string[], "add": string[], "remove": string[] }},
  "segmentInsights": {{ "topPerformers": string[], "underperformers": string[], "surpriseFindings": string[] }}
}}
"""

SENTIMENT_SYSTEM_PROMPT = (
    "You are an expert sentiment analysis specialist focusing on market research and "
    "focus group feedback. Provide detailed, actionable insights that help campaign "
    "creators understand participant responses."
)

SENTIMENT_PROMPT = """
Analyze the sentiment of the following feedback text and provide detailed insights:

Text: "{text}"

Provide your analysis in the following JSON format:
{{
  "sentimentScore": <number between -1.0 and 1.0>,
  "emotions": {{ "primary": "<primary emotion>", "secondary": ["<secondary emotions>"], "confidence": <0-1> }},
  "keywords": {{ "positive": [], "negative": [], "neutral": [] }},
  "suggestions": {{ "improvements": [], "concerns": [], "opportunities": [] }},
  "confidence": <overall confidence 0-1>
}}

Focus on overall polarity, emotional undertones, key phrases that drive sentiment,
and actionable insights for campaign creators.
"""

#!/usr/bin/env python3
"""Generate a synthetic AI job displacement survey CSV for local runs."""

import argparse
import os
import random

import numpy as np
import pandas as pd

INDUSTRIES = [
    'Technology', 'Finance', 'Healthcare', 'Manufacturing', 'Retail',
    'Education', 'Logistics', 'Media', 'Legal', 'Government',
]
JOB_ROLES = ['Individual Contributor', 'Manager', 'Director', 'Executive', 'Contractor']
EDUCATION = ["High School", "Bachelor's", "Master's", 'PhD']
COUNTRIES = ['USA', 'India', 'UK', 'Germany', 'Canada', 'Brazil', 'Japan']
USAGE = ['Never', 'Monthly', 'Weekly', 'Daily']
RISK = ['Low', 'Medium', 'High']
RESKILLING = ['Yes', 'No', 'Maybe']


def generate_survey_data(n_respondents: int, seed: int) -> pd.DataFrame:
    """Generate survey responses with a few blank answers mixed in."""
    print("🤖 Generating AI job displacement survey data...")
    rng = np.random.default_rng(seed)
    random.seed(seed)

    data = []
    for i in range(n_respondents):
        industry = random.choices(INDUSTRIES, weights=[18, 12, 12, 10, 9, 9, 8, 8, 7, 7])[0]
        usage = random.choice(USAGE)
        experience = int(rng.integers(0, 35))
        # heavier AI users report more concern
        concern = int(np.clip(rng.normal(4 + USAGE.index(usage), 2), 1, 10))

        data.append({
            'respondent_id': f"R_{i+1:05d}",
            'age': int(np.clip(rng.normal(38, 11), 18, 75)),
            'country': random.choice(COUNTRIES),
            'industry': industry,
            'job_role': random.choice(JOB_ROLES),
            'education_level': random.choice(EDUCATION),
            'years_experience': experience,
            'annual_salary_usd': int(rng.normal(55000 + experience * 2200, 15000)),
            'ai_usage_frequency': usage,
            'concern_level': concern,
            'displacement_risk': random.choice(RISK),
            'reskilling_interest': random.choice(RESKILLING),
        })

    df = pd.DataFrame(data)

    # Survey answers are optional; blank out a small share of them
    for column in ['industry', 'education_level', 'annual_salary_usd', 'reskilling_interest']:
        mask = rng.random(len(df)) < 0.03
        df[column] = df[column].astype(object)
        df.loc[mask, column] = ''

    return df


def main():
    """Write the sample survey CSV."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--rows', type=int, default=1500)
    parser.add_argument('--seed', type=int, default=7)
    parser.add_argument('--output', default='data/ai_job_displacement_survey.csv')
    args = parser.parse_args()

    os.makedirs(os.path.dirname(args.output) or '.', exist_ok=True)

    df = generate_survey_data(args.rows, args.seed)
    df.to_csv(args.output, index=False)
    print(f"✅ Generated {len(df)} survey responses")
    print(f"  📄 {args.output} ({len(df)} rows, {len(df.columns)} columns)")


if __name__ == "__main__":
    main()

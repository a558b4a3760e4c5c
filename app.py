import os
import json
import logging
import streamlit as st
import pandas as pd
import numpy as np
import plotly.express as px
import plotly.graph_objects as go
from macc.config import load_config, ALL_SECTORS
from macc.catalog import Catalogs, resolve_catalogs
from macc.curve import build_curve, target_x, CurveModel, CAPACITY, INTENSITY
from macc.optimize import solve_target
from macc.projection import project_measure, measure_from_projection
from macc.utils import (CATEGORIES, STACK_FIELDS, DriverSet, FinancialStack, MeasureTemplate,
                        normalize_measures, baselines_from_records, next_measure_id, number_series,
                        parse_override)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

st.set_page_config(page_title='MACC Builder', layout='wide')

config = load_config(os.environ.get('MACC_CONFIG'))
YEARS = config['years']
BASE_YEAR = config['base_year']
SAMPLE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'sample_firm.json')


def load_firm(payload):
    st.session_state.firm_name = payload.get('name', 'My Firm')
    st.session_state.sectors = list(payload.get('sectors') or [])
    st.session_state.baselines = baselines_from_records(payload.get('baselines'))
    st.session_state.catalogs = Catalogs.from_records(payload.get('catalogs'))
    st.session_state.measures = normalize_measures(payload.get('measures'), len(YEARS))
    st.session_state.carbon_price = float(payload.get('carbonPrice') or 0)


if 'measures' not in st.session_state:
    with open(SAMPLE_PATH, encoding='utf-8') as fh:
        sample_payload = json.load(fh)
    st.session_state.sample_catalogs = Catalogs.from_records(sample_payload.get('catalogs'))
    load_firm(sample_payload)

st.sidebar.title('Navigation')
page = st.sidebar.radio('Go to', ['MACC', 'Measure Projection'])

uploaded = st.sidebar.file_uploader('Load firm JSON', type=['json'])
if uploaded is not None and st.sidebar.button('Load'):
    load_firm(json.loads(uploaded.read().decode('utf-8')))
    st.sidebar.success('Firm data loaded.')

st.session_state.carbon_price = st.sidebar.number_input(
    f"Carbon price ({config['currency']}/tCO₂)", value=float(st.session_state.carbon_price), step=100.0)
catalog_mode = st.sidebar.radio('Catalogs', ['merged', 'sample', 'custom'], horizontal=True)


# --- Page 1: MACC ---
if page == 'MACC':
    st.header(f'MACC – {st.session_state.firm_name}')

    col1, col2, col3 = st.columns(3)
    with col1:
        sector = st.selectbox('Sector', [ALL_SECTORS] + st.session_state.sectors)
        axis_mode = st.radio('X axis', [CAPACITY, INTENSITY], horizontal=True)
    with col2:
        requested = st.radio('Curve model', [m.value for m in CurveModel],
                             index=[m.value for m in CurveModel].index(st.session_state.get('curve_model', 'step')),
                             horizontal=True)
        positive_only = st.checkbox('Fit positive costs only', value=False)
    with col3:
        target_pct = st.number_input('Target reduction (% of baseline emissions)', 0.0, 100.0, 20.0)

    curve = build_curve(st.session_state.measures, st.session_state.baselines, sector,
                        st.session_state.carbon_price, axis_mode, requested, positive_only,
                        palette=config['palette'])
    if curve.model.value != requested:
        st.info(f'{requested.title()} fit unavailable for this data; showing the step curve.')
    st.session_state.curve_model = curve.model.value

    emissions = curve.baseline.annual_emissions
    target = solve_target(curve.sorted_measures, target_pct, emissions, axis_mode)

    c1, c2, c3 = st.columns(3)
    unit = 'tCO₂' if axis_mode == CAPACITY else '%'
    c1.metric('Total abatement', f'{curve.total:,.2f} {unit}')
    c2.metric('Target reached', f'{target.reached:,.2f} {unit}')
    c3.metric(f"Budget to target ({config['currency']})", f'{target.budget:,.0f}')

    fig = go.Figure()
    for s in curve.segments:
        fig.add_trace(go.Bar(x=[(s.x1 + s.x2) / 2], y=[s.cost], width=[s.x2 - s.x1],
                             marker_color=s.color, name=s.name,
                             hovertemplate=f'{s.name}<br>{s.abatement:,.0f} tCO₂<br>%{{y:,.0f}}/tCO₂'))
    if curve.model is CurveModel.QUADRATIC:
        xs, ys = zip(*curve.quadratic.fitted)
        fig.add_trace(go.Scatter(x=xs, y=ys, mode='lines', name=f'Quadratic (R²={curve.quadratic.r2 or 0:.3f})'))
    elif curve.model is CurveModel.PIECEWISE:
        xs, ys = zip(*curve.piecewise.fitted_points)
        fig.add_trace(go.Scatter(x=xs, y=ys, mode='lines', name=f'Piecewise (R²={curve.piecewise.r2 or 0:.3f})'))
    fig.add_vline(x=target_x(target_pct, axis_mode, emissions), line_dash='dash')
    fig.update_layout(bargap=0, xaxis_range=[0, curve.width], yaxis_range=list(curve.y_domain),
                      xaxis_title='Cumulative abatement (tCO₂)' if axis_mode == CAPACITY else 'Intensity reduction (%)',
                      yaxis_title=f"Marginal cost ({config['currency']}/tCO₂)")
    st.plotly_chart(fig, use_container_width=True)

    st.subheader('Measures (cost order)')
    st.dataframe(curve.segments_frame(), use_container_width=True)

# --- Page 2: Measure Projection ---
else:
    st.header('Measure Projection')
    catalogs = resolve_catalogs(st.session_state.sample_catalogs, st.session_state.catalogs, catalog_mode)
    sectors = st.session_state.sectors or ['General']

    col1, col2, col3 = st.columns(3)
    name = col1.text_input('Measure name', 'Industrial Efficiency Project')
    sector = col2.selectbox('Sector', sectors)
    discount_rate = col3.number_input('Discount rate', 0.0, 0.5, float(config['discount_rate']), step=0.005, format='%.3f',
                                      help='0 uses the default rate')

    st.subheader('Adoption & other direct reduction')
    template = MeasureTemplate.new(len(YEARS), discount_rate=discount_rate)
    series_df = pd.DataFrame({'adoption': template.adoption, 'other_direct_t': template.other_reduction},
                             index=YEARS).T
    series_df = st.data_editor(series_df, key='series')

    st.subheader('Driver lines (Δ quantity vs BAU per year)')
    drivers = DriverSet()
    for category in CATEGORIES:
        keys = [e.key for e in catalogs.entries(category)]
        if not keys:
            continue
        with st.expander(category.title()):
            n_lines = st.number_input('Lines', 0, 10, 1, key=f'{category}_n')
            for i in range(int(n_lines)):
                k = f'{category}_{i}'
                st.markdown(f'**Line {i + 1}**')
                key = st.selectbox('Catalog entry', keys, key=f'{k}_key')
                c1, c2, c3, c4 = st.columns(4)
                price_ov = c1.text_input('Price override', '', key=f'{k}_pov')
                ef_ov = c2.text_input('EF override', '', key=f'{k}_eov')
                price_drift = c3.number_input('Price drift (%/yr)', value=0.0, key=f'{k}_pd')
                ef_drift = c4.number_input('EF drift (%/yr)', value=0.0, key=f'{k}_ed')
                rows = {'delta': np.zeros(len(YEARS))}
                if category == 'electricity':
                    rows['ef_override'] = [np.nan] * len(YEARS)
                grid = st.data_editor(pd.DataFrame(rows, index=YEARS).T, key=f'{k}_grid')
                drivers = drivers.add_line(category, key, len(YEARS),
                                           delta=number_series(grid.loc['delta'].tolist(), len(YEARS)),
                                           price_override=parse_override(price_ov),
                                           ef_override=parse_override(ef_ov),
                                           price_drift_pct=price_drift, ef_drift_pct=ef_drift)
                line = drivers.lines[-1]
                if category == 'electricity':
                    for j, value in enumerate(grid.loc['ef_override'].tolist()):
                        line = line.with_ef_override(j, value)
                    drivers = drivers.replace_line(line)
                if st.checkbox('Exclude this line', key=f'{k}_off'):
                    drivers = drivers.remove_line(line.id)

    st.subheader('Financial stack (₹ cr unless noted)')
    stack_df = pd.DataFrame(FinancialStack.default(
        len(YEARS), config['default_tenure_years'], config['default_interest_pct']).to_record(), index=YEARS).T
    stack_df = st.data_editor(stack_df, key='stack')
    stack = FinancialStack.from_record({f: stack_df.loc[f].tolist() for f in STACK_FIELDS}, len(YEARS))

    template = MeasureTemplate.new(
        len(YEARS), drivers=drivers, stack=stack, discount_rate=discount_rate,
        adoption=number_series(series_df.loc['adoption'].tolist(), len(YEARS)),
        other_reduction=number_series(series_df.loc['other_direct_t'].tolist(), len(YEARS)),
    )
    rep_year = st.selectbox('Representative year', ['auto'] + [str(y) for y in YEARS])
    rep = None if rep_year == 'auto' else YEARS.index(int(rep_year))
    projection = project_measure(template, catalogs, st.session_state.carbon_price, YEARS, BASE_YEAR, rep,
                                 fallback_year=config['fallback_year'])

    df = projection.to_frame(discount_rate)
    st.dataframe(df, use_container_width=True)
    fig1 = px.line(df, x='year', y='direct_abatement', title='Direct abatement (tCO₂)')
    fig2 = px.line(df, x='year', y='net_cost_cr', title='Net cost (₹ cr)')
    c1, c2 = st.columns(2)
    c1.plotly_chart(fig1, use_container_width=True)
    c2.plotly_chart(fig2, use_container_width=True)

    f = projection.finance
    c1, c2, c3, c4 = st.columns(4)
    c1.metric('NPV w/o carbon price', f'{f.npv_without_cp:,.0f}')
    c2.metric('NPV with carbon price', f'{f.npv_with_cp:,.0f}')
    c3.metric('Avg cost w/o CP (/tCO₂)', f'{f.avg_cost_without_cp:,.0f}')
    c4.metric('Avg cost with CP (/tCO₂)', f'{f.avg_cost_with_cp:,.0f}')

    include_cp = st.checkbox('Saved cost includes carbon price', value=False)
    st.write(f'Representative year: {projection.representative_year}')
    if st.button('Save to MACC'):
        measures = st.session_state.measures
        measure = measure_from_projection(next_measure_id(measures), name, sector, template, projection,
                                          st.session_state.carbon_price, include_cp)
        st.session_state.measures = measures + [measure]
        st.success(f'Saved "{name}" ({measure.abatement_tco2:,.0f} tCO₂ at {measure.cost_per_tco2:,.0f}/tCO₂).')

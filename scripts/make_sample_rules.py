#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
from pathlib import Path


MATERNITY_HEADER = ["城市", "产假类型", "流产类型", "天数", "是否遇法定节假日顺延", "是否享受津贴"]
ALLOWANCE_HEADER = ["城市", "社平工资", "平均缴费工资", "公司平均工资", "计算基数", "账户类型"]


def _maternity_rows(city: str, reward_days: int) -> list[list[object]]:
    return [
        [city, "法定产假", "", 98, "否", "是"],
        [city, "难产假", "", 15, "否", "是"],
        [city, "多胞胎假", "", 15, "否", "是"],
        [city, "奖励假", "", reward_days, "是", "是"],
        [city, "流产假", "4个月以下", 15, "否", "是"],
        [city, "流产假", "4个月以上7个月以下", 42, "否", "是"],
        [city, "流产假", "7个月以上", 75, "否", "是"],
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="生成产假规则与津贴规则 CSV 模板")
    parser.add_argument("--output-dir", required=True, help="输出目录")
    parser.add_argument("--city", default="北京", help="城市")
    parser.add_argument("--reward-days", type=int, default=60, help="奖励假天数")
    parser.add_argument("--social-average", type=float, default=11518, help="社平工资")
    parser.add_argument("--company-average", type=float, default=12000, help="公司平均工资")
    parser.add_argument("--account", default="企业账户", help="账户类型 (企业账户/个人账户)")
    args = parser.parse_args()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    maternity_path = output_dir / "maternity_rules.csv"
    with maternity_path.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(MATERNITY_HEADER)
        writer.writerows(_maternity_rows(args.city, args.reward_days))

    allowance_path = output_dir / "allowance_rules.csv"
    with allowance_path.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(ALLOWANCE_HEADER)
        writer.writerow(
            [
                args.city,
                f"{args.social_average:.2f}",
                "",
                f"{args.company_average:.2f}",
                "平均工资",
                args.account,
            ]
        )

    print(f"产假规则模板已生成: {maternity_path}")
    print(f"津贴规则模板已生成: {allowance_path}")


if __name__ == "__main__":
    main()
